from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from copy import deepcopy
from threading import RLock
from typing import Any, List

from loguru import logger

from .errors import ReadError, WriteError
from .models import AnnouncementEntity


# PUBLIC_INTERFACE
class Backend(ABC):
    """
    Abstract persistence contract: the whole collection is read and written
    at once. A collection that does not exist yet reads as an empty list.
    """

    name: str = "backend"

    @abstractmethod
    def read(self) -> List[AnnouncementEntity]:
        """Return every stored record. Raise ReadError on I/O failure."""

    @abstractmethod
    def write(self, records: List[AnnouncementEntity]) -> None:
        """Replace the stored collection. Raise WriteError on I/O failure."""

    def close(self) -> None:
        """Release connections held by the backend."""


def ensure_record_list(value: Any, source: str) -> List[AnnouncementEntity]:
    """Reject persisted payloads that are not a plain list of records carrying an id."""
    if not isinstance(value, list) or not all(
        isinstance(item, dict) and isinstance(item.get("id"), str) for item in value
    ):
        raise ReadError(f"{source} does not contain a list of announcements")
    return value  # type: ignore[return-value]


class MemoryBackend(Backend):
    """
    Process-scoped backend for runtimes without a writable filesystem.
    The collection lives as long as this instance; nothing survives a restart.
    """

    name = "memory"

    def __init__(self) -> None:
        self._lock = RLock()
        self._records: List[AnnouncementEntity] = []

    def read(self) -> List[AnnouncementEntity]:
        with self._lock:
            return deepcopy(self._records)

    def write(self, records: List[AnnouncementEntity]) -> None:
        with self._lock:
            self._records = deepcopy(records)


class FileBackend(Backend):
    """
    JSON file backend. The file holds a bare list of records and is created
    (with its directory) on first access.
    """

    name = "file"

    def __init__(self, path: str) -> None:
        self._path = path

    def _ensure_file(self) -> None:
        if os.path.exists(self._path):
            return
        os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            f.write("[]")
        logger.info(f"Initialized empty announcements file at {self._path}")

    def read(self) -> List[AnnouncementEntity]:
        try:
            self._ensure_file()
            with open(self._path, "r", encoding="utf-8") as f:
                content = json.load(f)
        except (OSError, ValueError) as e:
            raise ReadError(f"Failed to read {self._path}: {e}") from e
        return ensure_record_list(content, self._path)

    def write(self, records: List[AnnouncementEntity]) -> None:
        directory = os.path.dirname(self._path) or "."
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".announcements-", suffix=".json", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(records, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise WriteError(f"Failed to write {self._path}: {e}") from e
