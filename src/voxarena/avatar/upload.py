"""Move an avatar source (data URL or remote URL) into the avatar store."""

from __future__ import annotations

import base64
import binascii
import logging

import httpx

from voxarena.storage.avatar_store import AvatarStore, avatar_key

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/png"
DOWNLOAD_TIMEOUT_SECONDS = 30.0


class AvatarSourceError(Exception):
    """Raised when an avatar source cannot be decoded or downloaded."""

    pass


def _decode_data_url(src: str) -> bytes:
    _, _, payload = src.partition(",")
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise AvatarSourceError(f"Invalid base64 avatar payload: {e}") from e


def _download(src: str, http_client: httpx.Client | None) -> tuple[bytes, str]:
    client = http_client
    should_close = False
    if client is None:
        client = httpx.Client(timeout=DOWNLOAD_TIMEOUT_SECONDS, follow_redirects=True)
        should_close = True
    try:
        response = client.get(src)
    except httpx.HTTPError as e:
        raise AvatarSourceError(f"Failed to fetch avatar: {e}") from e
    finally:
        if should_close:
            client.close()

    if response.status_code >= 400:
        raise AvatarSourceError(f"Failed to fetch avatar: {response.status_code}")
    content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
    return response.content, content_type.split(";")[0].strip() or DEFAULT_CONTENT_TYPE


def upload_avatar_from_source(
    store: AvatarStore,
    persona_id: str,
    src: str,
    *,
    http_client: httpx.Client | None = None,
) -> str:
    """Store the image behind ``src`` as ``avatars/<persona_id>.png``.

    Data URLs are decoded and stored as PNG. http(s) URLs are downloaded;
    the response content type is kept, PNG when absent.

    Returns:
        Public URL of the stored avatar.

    Raises:
        AvatarSourceError: If ``src`` is neither a data URL nor an http(s)
            URL, or cannot be decoded or downloaded.
        AvatarStorageError: If the store rejects the write.
    """
    key = avatar_key(persona_id)

    if src.startswith("data:"):
        data = _decode_data_url(src)
        content_type = DEFAULT_CONTENT_TYPE
    elif src.startswith("http://") or src.startswith("https://"):
        data, content_type = _download(src, http_client)
    else:
        raise AvatarSourceError("Unsupported avatar source (not data URL or http/https)")

    url = store.put(key, data, content_type=content_type)
    logger.info("Uploaded avatar for persona %s via %s", persona_id, store.backend_name)
    return url
