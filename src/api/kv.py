from __future__ import annotations

import json
from typing import Any, List, Optional

import httpx
from loguru import logger

from .errors import ReadError, StorageError, WriteError
from .models import AnnouncementEntity
from .storage import Backend, ensure_record_list


class KVBackend(Backend):
    """
    Durable backend on a Redis-compatible REST key-value service
    (Upstash / Vercel KV protocol).

    Commands are POSTed to the base URL as JSON arrays, e.g. ["GET", key];
    replies are {"result": ...} or {"error": "..."}. The collection is stored
    under one key as a JSON-encoded string.
    """

    name = "kv"

    def __init__(
        self,
        url: str,
        token: str,
        key: str = "announcements",
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._key = key
        self._client = httpx.Client(
            base_url=url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _command(self, *args: Any, error_cls: type[StorageError]) -> Any:
        try:
            response = self._client.post("/", json=list(args))
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise error_cls(f"Key-value {args[0]} failed: {e}") from e

        if not isinstance(payload, dict):
            raise error_cls(f"Key-value {args[0]} returned an unexpected reply")
        if payload.get("error"):
            raise error_cls(f"Key-value {args[0]} failed: {payload['error']}")
        return payload.get("result")

    def read(self) -> List[AnnouncementEntity]:
        result = self._command("GET", self._key, error_cls=ReadError)
        if result is None:
            logger.debug(f"Key '{self._key}' not set; treating as empty collection")
            return []
        if isinstance(result, str):
            try:
                result = json.loads(result)
            except ValueError as e:
                raise ReadError(f"Key '{self._key}' holds invalid JSON") from e
        return ensure_record_list(result, f"key '{self._key}'")

    def write(self, records: List[AnnouncementEntity]) -> None:
        try:
            encoded = json.dumps(records, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise WriteError(f"Cannot encode announcements: {e}") from e
        self._command("SET", self._key, encoded, error_cls=WriteError)
