"""VoxArena avatar storage interface and backend selection.

Environment Variables:
    VOXARENA_AVATAR_STORE: "filesystem" (default) or "r2"
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod

from voxarena.storage.errors import StorageConfigError

VOXARENA_AVATAR_STORE_ENV = "VOXARENA_AVATAR_STORE"


def avatar_key(persona_id: str) -> str:
    """Object key for a persona's avatar image."""
    return f"avatars/{persona_id}.png"


class AvatarStore(ABC):
    """Abstract base class for avatar storage backends.

    Implementations:
    - FilesystemAvatarStore: Local filesystem (dev/test)
    - R2AvatarStore: Cloudflare R2 via the S3 API (production)
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier for logs and spans."""
        ...

    @abstractmethod
    def put(self, key: str, data: bytes, *, content_type: str = "image/png") -> str:
        """Store an object, overwriting any previous content under ``key``.

        Args:
            key: Logical key/path for the object.
            data: Object content as bytes.
            content_type: MIME type of the content.

        Returns:
            Public URL of the stored object.

        Raises:
            PathTraversalError: If key contains traversal sequences.
            StorageBackendError: If the backend cannot complete the write.
        """
        ...


def get_avatar_store() -> AvatarStore:
    """Build the avatar store selected by VOXARENA_AVATAR_STORE.

    Raises:
        StorageConfigError: If the backend name is unknown or its
            configuration is incomplete.
    """
    backend = os.environ.get(VOXARENA_AVATAR_STORE_ENV, "filesystem").strip().lower()

    if backend == "filesystem":
        from voxarena.storage.filesystem_store import FilesystemAvatarStore

        return FilesystemAvatarStore()
    if backend == "r2":
        from voxarena.storage.r2_store import R2AvatarStore

        return R2AvatarStore.from_env()

    raise StorageConfigError(f"Unknown avatar store backend: {backend}")
