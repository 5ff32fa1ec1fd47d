"""Best-effort avatar enrichment for personas.

Runs after a persona write has committed, typically as a FastAPI background
task. It loads the persona, generates an image when the persona has none,
uploads it to the avatar store, and saves the public URL. Failures are
logged and never propagate to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from voxarena.avatar.client import OpenAIImageClient
from voxarena.avatar.extract import extract_avatar_url
from voxarena.avatar.upload import upload_avatar_from_source
from voxarena.models.persona import Persona
from voxarena.observability.tracing import traced_operation
from voxarena.persistence.db import begin_app_conn, is_postgres_configured
from voxarena.persistence.repositories.personas import (
    InMemoryPersonasRepository,
    PersonasRepository,
)
from voxarena.storage.avatar_store import AvatarStore, get_avatar_store

logger = logging.getLogger(__name__)


@contextmanager
def _personas_repository() -> Generator[PersonasRepository | InMemoryPersonasRepository, None, None]:
    """Yield a personas repository in its own short transaction."""
    if is_postgres_configured():
        with begin_app_conn() as conn:
            yield PersonasRepository(conn)
    else:
        yield InMemoryPersonasRepository()


class AvatarEnricher:
    """Fills a persona's ``avatar_url`` when it is empty.

    Args:
        image_client: Image generator; defaults to OpenAIImageClient.
        store: Avatar store; resolved with get_avatar_store() on first use.
    """

    def __init__(
        self,
        image_client: OpenAIImageClient | None = None,
        store: AvatarStore | None = None,
    ) -> None:
        self._image_client = image_client or OpenAIImageClient()
        self._store = store

    @property
    def store(self) -> AvatarStore:
        if self._store is None:
            self._store = get_avatar_store()
        return self._store

    def enrich(self, persona_id: str) -> str | None:
        """Generate and attach an avatar for a persona.

        Returns:
            The stored avatar URL, or None when skipped or failed.
        """
        try:
            return self._enrich(persona_id)
        except Exception:
            logger.exception("Avatar enrichment failed for persona %s", persona_id)
            return None

    @traced_operation("avatar.enrich")
    def _enrich(self, persona_id: str) -> str | None:
        with _personas_repository() as repo:
            row = repo.get(persona_id)
        if row is None:
            logger.info("Avatar enrichment skipped: persona %s not found", persona_id)
            return None

        persona = Persona.model_validate(row)
        if persona.avatar_url:
            logger.debug("Avatar enrichment skipped: persona %s has an avatar", persona_id)
            return None

        generated = self._image_client.generate(persona)
        source = extract_avatar_url(generated)
        if source is None:
            logger.info("Avatar enrichment produced no image for persona %s", persona_id)
            return None

        url = upload_avatar_from_source(self.store, persona_id, source)

        with _personas_repository() as repo:
            repo.update(persona_id, {"avatar_url": url})
        logger.info("Avatar stored for persona %s", persona_id)
        return url
