"""VoxArena avatar storage error types.

All errors are fail-closed: a write that cannot complete safely raises.
"""

from __future__ import annotations


class AvatarStorageError(Exception):
    """Base exception for avatar storage operations.

    Attributes:
        message: Human-readable error message.
        key: Object key associated with the operation (if applicable).
    """

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.key = key

    def __str__(self) -> str:
        if self.key:
            return f"{self.message} key={self.key}"
        return self.message


class PathTraversalError(AvatarStorageError):
    """Raised when an object key tries to escape the storage root."""

    def __init__(
        self,
        message: str = "Invalid key: path traversal detected",
        *,
        key: str | None = None,
    ) -> None:
        super().__init__(message, key=key)


class StorageConfigError(AvatarStorageError):
    """Raised when a backend is selected but its configuration is missing."""

    pass


class StorageBackendError(AvatarStorageError):
    """Raised when the backend itself fails (I/O error, remote API error)."""

    def __init__(
        self,
        message: str = "Storage backend error",
        *,
        key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, key=key)
        self.cause = cause
