from __future__ import annotations

import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional

from loguru import logger

from .errors import NotFound, ReadError, WriteError
from .kv import KVBackend
from .models import AnnouncementEntity
from .settings import Settings
from .storage import Backend, FileBackend, MemoryBackend
from .utils import TimestampInput, normalize_timestamp, sort_key

DivergenceHook = Callable[[WriteError], None]

_UPDATABLE_FIELDS = ("title", "body", "publishedAt", "highlight")


# PUBLIC_INTERFACE
class AnnouncementStore:
    """
    Single source of truth for the announcement collection.

    Reads and writes go to the durable key-value backend when one is
    configured, otherwise to the secondary (file or memory) backend.

    - Reads never fall back: a failing durable read raises ReadError.
    - A failing durable write falls back to the secondary backend. The
      operation still succeeds, the divergence is logged, counted and
      reported to ``on_divergence``.

    Mutations are whole-collection read-modify-write with no locking;
    concurrent writers resolve as last-writer-wins.
    """

    def __init__(
        self,
        secondary: Backend,
        durable: Optional[Backend] = None,
        on_divergence: Optional[DivergenceHook] = None,
    ) -> None:
        self._secondary = secondary
        self._durable = durable
        self._on_divergence = on_divergence
        self._divergences = 0

    @property
    def backend_name(self) -> str:
        """Name of the backend serving reads."""
        return (self._durable or self._secondary).name

    @property
    def divergences(self) -> int:
        """Number of writes that landed only on the secondary backend."""
        return self._divergences

    def close(self) -> None:
        self._secondary.close()
        if self._durable is not None:
            self._durable.close()

    def _load(self) -> Dict[str, AnnouncementEntity]:
        backend = self._durable or self._secondary
        try:
            records = backend.read()
        except ReadError as e:
            logger.error(f"Reading announcements from {backend.name} failed: {e}")
            raise
        # Unordered by construction; ordering is derived on read
        return {record["id"]: record for record in records}

    def _save(self, items: Dict[str, AnnouncementEntity]) -> None:
        records = list(items.values())
        if self._durable is not None:
            try:
                self._durable.write(records)
                return
            except WriteError as e:
                self._divergences += 1
                logger.warning(
                    f"Write to {self._durable.name} failed, falling back to "
                    f"{self._secondary.name}; backends may now diverge: {e}"
                )
                if self._on_divergence is not None:
                    self._on_divergence(e)
        self._secondary.write(records)

    def _new_id(self, items: Mapping[str, AnnouncementEntity]) -> str:
        new_id = str(uuid.uuid4())
        while new_id in items:
            new_id = str(uuid.uuid4())
        return new_id

    def list(self) -> List[AnnouncementEntity]:
        """Return every announcement, most recent publishedAt first."""
        items = self._load()
        return sorted(items.values(), key=lambda a: sort_key(a.get("publishedAt")), reverse=True)

    def get(self, announcement_id: str) -> AnnouncementEntity:
        """Return one announcement or raise NotFound."""
        item = self._load().get(announcement_id)
        if item is None:
            raise NotFound(f"Announcement {announcement_id} not found")
        return item

    def create(
        self,
        title: str,
        body: str,
        published_at: Optional[TimestampInput] = None,
        highlight: Optional[bool] = None,
    ) -> AnnouncementEntity:
        """Trim, default and prepend a new announcement, then persist."""
        items = self._load()
        entity: AnnouncementEntity = {
            "id": self._new_id(items),
            "title": title.strip(),
            "body": body.strip(),
            "publishedAt": normalize_timestamp(published_at),
            "highlight": bool(highlight) if highlight is not None else False,
        }
        # Newest entry first in the persisted list
        self._save({entity["id"]: entity, **items})
        logger.info(f"Created announcement {entity['id']}")
        return entity

    def update(self, announcement_id: str, changes: Mapping[str, Any]) -> AnnouncementEntity:
        """
        Apply only the supplied fields to an existing announcement.

        Accepted keys: title, body, publishedAt, highlight. Others are ignored.
        """
        items = self._load()
        existing = items.get(announcement_id)
        if existing is None:
            raise NotFound(f"Announcement {announcement_id} not found")

        updated: AnnouncementEntity = dict(existing)  # type: ignore[assignment]
        for field in _UPDATABLE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if field in ("title", "body"):
                updated[field] = value.strip()  # type: ignore[literal-required]
            elif field == "publishedAt":
                updated["publishedAt"] = normalize_timestamp(value)
            else:
                updated["highlight"] = bool(value)

        items[announcement_id] = updated
        self._save(items)
        applied = sorted(k for k in changes if k in _UPDATABLE_FIELDS)
        logger.info(f"Updated announcement {announcement_id}: {applied}")
        return updated

    def delete(self, announcement_id: str) -> None:
        """Hard-delete an announcement or raise NotFound."""
        items = self._load()
        before = len(items)
        remaining = {k: v for k, v in items.items() if k != announcement_id}
        if len(remaining) == before:
            raise NotFound(f"Announcement {announcement_id} not found")
        self._save(remaining)
        logger.info(f"Deleted announcement {announcement_id}")


# PUBLIC_INTERFACE
def build_store(settings: Settings, on_divergence: Optional[DivergenceHook] = None) -> AnnouncementStore:
    """
    Construct the store once at process start from settings.
    - secondary: MemoryBackend on ephemeral filesystems, FileBackend otherwise
    - durable: KVBackend when KV_REST_API_URL and KV_REST_API_TOKEN are set
    """
    secondary: Backend
    if settings.ephemeral_filesystem:
        secondary = MemoryBackend()
    else:
        secondary = FileBackend(settings.announcements_file)

    durable: Optional[Backend] = None
    if settings.kv_configured:
        durable = KVBackend(
            url=settings.kv_rest_api_url or "",
            token=settings.kv_rest_api_token or "",
            key=settings.kv_announcements_key,
            timeout=settings.kv_timeout_seconds,
        )

    logger.info(
        f"Announcement store using {durable.name if durable else secondary.name} "
        f"(secondary: {secondary.name})"
    )
    return AnnouncementStore(secondary=secondary, durable=durable, on_divergence=on_divergence)
