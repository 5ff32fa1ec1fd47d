"""VoxArena avatar pipeline: prompt, source extraction, image client, upload."""

from voxarena.avatar.client import (
    AvatarGenerationConfigError,
    OpenAIImageClient,
    is_avatar_ai_enabled,
    normalize_size,
)
from voxarena.avatar.enricher import AvatarEnricher
from voxarena.avatar.extract import extract_avatar_url
from voxarena.avatar.prompt import build_avatar_prompt
from voxarena.avatar.upload import AvatarSourceError, upload_avatar_from_source

__all__ = [
    "AvatarEnricher",
    "AvatarGenerationConfigError",
    "AvatarSourceError",
    "OpenAIImageClient",
    "build_avatar_prompt",
    "extract_avatar_url",
    "is_avatar_ai_enabled",
    "normalize_size",
    "upload_avatar_from_source",
]
