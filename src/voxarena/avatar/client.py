"""OpenAI Images API client for persona avatars.

Generation is off unless VOXARENA_AVATAR_AI_ENABLED is truthy, so that no
image calls are billed by accident.

Environment Variables:
    VOXARENA_AVATAR_AI_ENABLED: Enable generation (1/true/yes)
    OPENAI_API_KEY: API key (required when enabled)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import httpx

from voxarena.avatar.extract import PNG_DATA_URL_PREFIX
from voxarena.avatar.prompt import build_avatar_prompt
from voxarena.models.persona import Persona

logger = logging.getLogger(__name__)

VOXARENA_AVATAR_AI_ENABLED_ENV = "VOXARENA_AVATAR_AI_ENABLED"
OPENAI_API_KEY_ENV = "OPENAI_API_KEY"

OPENAI_IMAGES_URL = "https://api.openai.com/v1/images/generations"
DEFAULT_TIMEOUT_SECONDS = 60.0
ALLOWED_SIZES = frozenset({"1024x1024", "1024x1792", "1792x1024"})
DEFAULT_SIZE = "1024x1024"


class AvatarGenerationConfigError(Exception):
    """Raised when generation is enabled but OPENAI_API_KEY is missing."""

    pass


@dataclass(frozen=True)
class ImageModel:
    """An image model and whether it accepts ``response_format=b64_json``."""

    name: str
    supports_b64: bool


# gpt-image-1 rejects response_format; dall-e-3 accepts b64_json.
IMAGE_MODELS: tuple[ImageModel, ...] = (
    ImageModel(name="gpt-image-1", supports_b64=False),
    ImageModel(name="dall-e-3", supports_b64=True),
)


def is_avatar_ai_enabled() -> bool:
    """Check the VOXARENA_AVATAR_AI_ENABLED flag."""
    value = os.environ.get(VOXARENA_AVATAR_AI_ENABLED_ENV, "").strip().lower()
    return value in ("1", "true", "yes")


def normalize_size(requested: str | None) -> str:
    """Clamp a requested size to one every model accepts."""
    if requested in ALLOWED_SIZES:
        return requested
    return DEFAULT_SIZE


class OpenAIImageClient:
    """Generates portrait images, trying each model in IMAGE_MODELS in turn."""

    def __init__(
        self,
        api_key: str | None = None,
        http_client: httpx.Client | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: OpenAI key. If None, read from OPENAI_API_KEY at call time.
            http_client: Optional httpx.Client for dependency injection (testing).
            timeout_seconds: Request timeout when no client is injected.
        """
        self._api_key = api_key
        self._http_client = http_client
        self._timeout_seconds = timeout_seconds

    def generate(self, persona: Persona, size: str | None = DEFAULT_SIZE) -> str | None:
        """Generate an avatar for ``persona``.

        Returns:
            A PNG data URL, an https URL, or None when disabled or every
            model failed.

        Raises:
            AvatarGenerationConfigError: If enabled without an API key.
        """
        if not is_avatar_ai_enabled():
            logger.debug("Avatar generation disabled")
            return None

        api_key = self._api_key or os.environ.get(OPENAI_API_KEY_ENV, "")
        if not api_key:
            raise AvatarGenerationConfigError(f"{OPENAI_API_KEY_ENV} is not set")

        prompt = build_avatar_prompt(persona)
        headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}

        client = self._http_client
        should_close = False
        if client is None:
            client = httpx.Client(timeout=self._timeout_seconds)
            should_close = True
        try:
            for model in IMAGE_MODELS:
                result = self._try_model(client, model, prompt, normalize_size(size), headers)
                if result:
                    return result
        finally:
            if should_close:
                client.close()
        return None

    def _try_model(
        self,
        client: httpx.Client,
        model: ImageModel,
        prompt: str,
        size: str,
        headers: dict[str, str],
    ) -> str | None:
        body: dict[str, str] = {"model": model.name, "prompt": prompt, "size": size}
        if model.supports_b64:
            body["response_format"] = "b64_json"

        try:
            response = client.post(OPENAI_IMAGES_URL, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Avatar generation request failed (%s): %s", model.name, exc)
            return None

        if response.status_code >= 400:
            logger.warning(
                "Avatar generation failed (%s): %d %s",
                model.name,
                response.status_code,
                response.text[:200],
            )
            return None

        try:
            data = response.json().get("data") or []
        except ValueError:
            logger.warning("Avatar generation returned non-JSON body (%s)", model.name)
            return None

        first = data[0] if data and isinstance(data[0], dict) else {}
        b64 = first.get("b64_json")
        if model.supports_b64 and isinstance(b64, str) and b64:
            return PNG_DATA_URL_PREFIX + b64
        url = first.get("url")
        if isinstance(url, str) and url.strip():
            return url.strip()

        logger.warning("Avatar generation returned unexpected payload (%s)", model.name)
        return None
