"""Normalize whatever an image provider returns into an avatar source.

Accepted inputs: ``{"url": ...}`` mappings, ``data:image/...`` URLs, raw
base64 text, http(s) URLs, and raw bytes. The result is a data URL or an
http(s) URL, or None.
"""

from __future__ import annotations

import base64
import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlparse

_BASE64ISH = re.compile(r"^[A-Za-z0-9+/=\s]+$")
_WHITESPACE = re.compile(r"\s+")

PNG_DATA_URL_PREFIX = "data:image/png;base64,"


def extract_avatar_url(value: Any) -> str | None:
    """Return a usable avatar source for ``value``, or None. Never raises."""
    if not value:
        return None

    if isinstance(value, Mapping):
        url = value.get("url")
        if isinstance(url, str) and url.strip():
            return url.strip()
        return None

    if isinstance(value, (bytes, bytearray, memoryview)):
        return PNG_DATA_URL_PREFIX + base64.b64encode(bytes(value)).decode("ascii")

    if not isinstance(value, str):
        return None

    s = value.strip()
    if not s:
        return None
    if s.startswith("data:image/"):
        return s
    if _BASE64ISH.match(s):
        return PNG_DATA_URL_PREFIX + _WHITESPACE.sub("", s)

    parsed = urlparse(s)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        return s
    return None
