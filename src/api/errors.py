from __future__ import annotations


class BoardError(Exception):
    """Base class for errors raised by the gate and the announcement store."""

    kind = "BoardError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind


class ServerMisconfigured(BoardError):
    """Required configuration (such as ADMIN_TOKEN) is absent."""

    kind = "ServerMisconfigured"


class Unauthorized(BoardError):
    """Bearer credential missing, malformed or wrong."""

    kind = "Unauthorized"


class NotFound(BoardError):
    """A mutation targeted an id that is not in the collection."""

    kind = "NotFound"


class StorageError(BoardError):
    kind = "StorageError"


class ReadError(StorageError):
    """The active backend could not be read."""

    kind = "ReadError"


class WriteError(StorageError):
    """A backend could not persist the collection."""

    kind = "WriteError"
