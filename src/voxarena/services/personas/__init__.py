"""Personas service module for VoxArena."""

from voxarena.services.personas.service import (
    PersonaInUseError,
    PersonaNotFoundError,
    PersonaService,
    PersonaServiceError,
    PersonaValidationError,
    collect_taxonomy_ids,
    parse_quirks_from_text,
    sanitize_persona_scalars,
)

__all__ = [
    "PersonaInUseError",
    "PersonaNotFoundError",
    "PersonaService",
    "PersonaServiceError",
    "PersonaValidationError",
    "collect_taxonomy_ids",
    "parse_quirks_from_text",
    "sanitize_persona_scalars",
]
