"""VoxArena filesystem avatar storage backend.

Stores avatars as plain files for development and tests, with path
traversal protection.

Environment Variables:
    VOXARENA_AVATAR_BASE_DIR: Base directory for storage
        (default: tempfile.gettempdir() / voxarena_avatars)
    VOXARENA_AVATAR_PUBLIC_BASE_URL: URL prefix returned for stored objects
        (default: file:// URI of the stored file)
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import uuid
from pathlib import Path

from voxarena.storage.avatar_store import AvatarStore
from voxarena.storage.errors import PathTraversalError, StorageBackendError

logger = logging.getLogger(__name__)

VOXARENA_AVATAR_BASE_DIR_ENV = "VOXARENA_AVATAR_BASE_DIR"
VOXARENA_AVATAR_PUBLIC_BASE_URL_ENV = "VOXARENA_AVATAR_PUBLIC_BASE_URL"

_SAFE_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9_\-./]+$")


def _is_path_traversal(key: str) -> bool:
    """Check if a key contains path traversal sequences or unsafe characters.

    Detects empty keys, null bytes, backslashes, absolute paths, drive
    letters, and ``..`` segments.
    """
    if not key or "\x00" in key or "\\" in key:
        return True
    if key.startswith("/") or key.startswith("~"):
        return True
    if len(key) >= 2 and key[1] == ":":
        return True
    if any(segment == ".." for segment in key.split("/")):
        return True
    return not _SAFE_KEY_PATTERN.match(key)


class FilesystemAvatarStore(AvatarStore):
    """Filesystem-based avatar storage.

    Objects live at ``{base_dir}/{key}``; writes go through a temp file and
    an atomic rename.
    """

    def __init__(
        self,
        base_dir: str | Path | None = None,
        public_base_url: str | None = None,
    ) -> None:
        """Initialize filesystem storage.

        Args:
            base_dir: Base directory. If None, uses VOXARENA_AVATAR_BASE_DIR
                or the OS temp directory.
            public_base_url: URL prefix for returned URLs. If None, uses
                VOXARENA_AVATAR_PUBLIC_BASE_URL or a file:// URI.
        """
        if base_dir is None:
            base_dir = os.environ.get(VOXARENA_AVATAR_BASE_DIR_ENV)
        if base_dir is None:
            base_dir = Path(tempfile.gettempdir()) / "voxarena_avatars"

        if public_base_url is None:
            public_base_url = os.environ.get(VOXARENA_AVATAR_PUBLIC_BASE_URL_ENV)

        self._base_dir = Path(base_dir).resolve()
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None
        logger.debug("FilesystemAvatarStore initialized with base_dir=%s", self._base_dir)

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "filesystem"

    @property
    def base_dir(self) -> Path:
        """Return the base directory path."""
        return self._base_dir

    def path_for(self, key: str) -> Path:
        """Resolve the file path for a key, rejecting traversal."""
        if _is_path_traversal(key):
            raise PathTraversalError(
                message="Invalid key: path traversal or unsafe characters detected",
                key=key,
            )
        resolved = (self._base_dir / key).resolve()
        try:
            resolved.relative_to(self._base_dir)
        except ValueError as e:
            raise PathTraversalError(
                message="Path resolves outside storage base directory", key=key
            ) from e
        return resolved

    def put(self, key: str, data: bytes, *, content_type: str = "image/png") -> str:
        """Write ``data`` to ``{base_dir}/{key}`` and return its URL."""
        path = self.path_for(key)
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageBackendError(
                message=f"Failed to write avatar: {e}", key=key, cause=e
            ) from e

        logger.info("Stored avatar %s (%d bytes, %s)", key, len(data), content_type)
        if self._public_base_url:
            return f"{self._public_base_url}/{key}"
        return path.as_uri()
