"""VoxArena avatar storage: interface, filesystem and R2 backends."""

from voxarena.storage.avatar_store import AvatarStore, avatar_key, get_avatar_store
from voxarena.storage.errors import (
    AvatarStorageError,
    PathTraversalError,
    StorageBackendError,
    StorageConfigError,
)
from voxarena.storage.filesystem_store import FilesystemAvatarStore

__all__ = [
    "AvatarStorageError",
    "AvatarStore",
    "FilesystemAvatarStore",
    "PathTraversalError",
    "StorageBackendError",
    "StorageConfigError",
    "avatar_key",
    "get_avatar_store",
]
