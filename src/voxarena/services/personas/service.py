"""PersonaService - persona CRUD with taxonomy links.

Client payloads mix scalar persona attributes with UI helper keys:
``...Id`` / ``...Ids`` keys carry taxonomy term ids for the join table and
``quirksText`` carries quirks as free text. The service separates the two,
validates the scalars, and keeps the taxonomy link set in sync.

Avatar generation is not done here; callers schedule
``voxarena.avatar.enricher.AvatarEnricher`` when ``needs_avatar`` is True.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ConfigDict, ValidationError, field_validator

from voxarena.models.debate import CamelModel
from voxarena.models.persona import PERSONA_SCALAR_FIELDS, Persona
from voxarena.persistence.repositories.debates import (
    DebatesRepository,
    InMemoryDebatesRepository,
)
from voxarena.persistence.repositories.personas import (
    InMemoryPersonasRepository,
    PersonasRepository,
)

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

SINGULAR_TAXONOMY_KEYS = (
    "ageGroupId",
    "universityId",
    "organizationId",
    "cultureId",
    "communityTypeId",
    "politicalId",
    "religionId",
    "accentId",
)

ARRAY_TAXONOMY_KEYS = (
    "cultureIds",
    "archetypeIds",
    "philosophyIds",
    "fillerPhraseIds",
    "metaphorIds",
    "debateHabitIds",
)

_QUIRK_SEPARATORS = re.compile(r"[,|\n]")
_HELPER_KEYS = frozenset({"id", "generateAvatar", "quirksText"})


class PersonaServiceError(Exception):
    """Base exception for PersonaService errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PersonaNotFoundError(PersonaServiceError):
    """Raised when a persona is not found."""

    def __init__(self, persona_id: str) -> None:
        self.persona_id = persona_id
        super().__init__("Not found")


class PersonaValidationError(PersonaServiceError):
    """Raised when a persona payload has missing or mistyped fields."""

    pass


class PersonaInUseError(PersonaServiceError):
    """Raised when deleting a persona that still sits on a debate roster."""

    def __init__(self, persona_id: str) -> None:
        self.persona_id = persona_id
        super().__init__("Persona is a participant in one or more debates")


class PersonaFields(CamelModel):
    """Scalar persona attributes accepted from clients (camelCase on the wire)."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    nickname: str | None = None
    description: str | None = None
    avatar_url: str | None = None
    profession: str | None = None
    age_group: str | None = None
    gender_identity: str | None = None
    pronouns: str | None = None
    accent_note: str | None = None
    temperament: str | None = None
    confidence: int | None = None
    verbosity: int | None = None
    tone: str | None = None
    vocabulary_style: str | None = None
    conflict_style: str | None = None
    debate_approach: list[str] | None = None
    quirks: list[str] | None = None

    @field_validator("debate_approach", "quirks")
    @classmethod
    def none_to_empty(cls, v: list[str] | None) -> list[str]:
        """List columns are never null."""
        return v or []


def collect_taxonomy_ids(payload: Mapping[str, Any]) -> list[str]:
    """Collect taxonomy term ids from singular and array helper keys.

    Only non-empty strings count. Duplicates are dropped, first seen wins.
    """
    ids: list[str] = []
    for key in SINGULAR_TAXONOMY_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            ids.append(value)
    for key in ARRAY_TAXONOMY_KEYS:
        values = payload.get(key)
        if isinstance(values, list):
            ids.extend(v for v in values if isinstance(v, str) and v.strip())
    return list(dict.fromkeys(ids))


def has_taxonomy_helper_keys(payload: Mapping[str, Any]) -> bool:
    """True if any ``...Id`` / ``...Ids`` key is present, empty or not."""
    return any(k.endswith("Id") or k.endswith("Ids") for k in payload)


def parse_quirks_from_text(quirks_text: Any) -> list[str] | None:
    """Split quirks text on commas, pipes, and newlines.

    Returns:
        Trimmed non-empty parts, or None when the input is not a string.
    """
    if not isinstance(quirks_text, str):
        return None
    return [part.strip() for part in _QUIRK_SEPARATORS.split(quirks_text) if part.strip()]


def sanitize_persona_scalars(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Reduce a client payload to validated persona columns.

    Helper keys are dropped and ``quirksText`` replaces ``quirks`` when it is
    a string.

    Returns:
        Column -> value for every scalar present in the payload.

    Raises:
        PersonaValidationError: If a scalar has the wrong type.
    """
    data = {
        k: v
        for k, v in payload.items()
        if k not in _HELPER_KEYS
        and not (k.endswith("Id") or k.endswith("Ids"))
        and k in PERSONA_SCALAR_FIELDS
    }
    quirks = parse_quirks_from_text(payload.get("quirksText"))
    if quirks is not None:
        data["quirks"] = quirks

    try:
        fields = PersonaFields.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ())) or "persona"
        raise PersonaValidationError(f"{loc}: {first.get('msg', 'invalid value')}") from e

    return fields.model_dump(exclude_unset=True)


class PersonaService:
    """Service layer for persona operations.

    Usage:
        service = PersonaService(db_conn=conn)
        persona = service.create({"name": "Ada", "archetypeIds": [term_id]})
    """

    def __init__(self, db_conn: Connection | None = None) -> None:
        """Initialize PersonaService.

        Args:
            db_conn: SQLAlchemy connection for Postgres. If None, uses in-memory.
        """
        if db_conn is not None:
            self._personas: PersonasRepository | InMemoryPersonasRepository = (
                PersonasRepository(db_conn)
            )
            self._debates: DebatesRepository | InMemoryDebatesRepository = DebatesRepository(
                db_conn
            )
        else:
            self._personas = InMemoryPersonasRepository()
            self._debates = InMemoryDebatesRepository()

    def create(self, payload: Any) -> Persona:
        """Create a persona and link its taxonomy terms.

        Raises:
            PersonaValidationError: If the body is not an object, the name is
                missing, or a scalar has the wrong type.
        """
        if not isinstance(payload, Mapping):
            raise PersonaValidationError("Request body must be a JSON object")

        fields = sanitize_persona_scalars(payload)
        name = (fields.get("name") or "").strip()
        if not name:
            raise PersonaValidationError("name is required")
        fields["name"] = name

        persona_id = str(uuid.uuid4())
        self._personas.create(persona_id=persona_id, fields=fields)

        taxonomy_ids = collect_taxonomy_ids(payload)
        if taxonomy_ids:
            self._personas.replace_taxonomies(persona_id, taxonomy_ids)

        logger.info("Created persona %s (taxonomies=%d)", persona_id, len(taxonomy_ids))
        return self.get(persona_id)

    def get(self, persona_id: str) -> Persona:
        """Get a persona with its taxonomy links.

        Raises:
            PersonaNotFoundError: If the persona does not exist.
        """
        persona = self._personas.get(persona_id)
        if persona is None:
            raise PersonaNotFoundError(persona_id)
        return Persona.model_validate(persona)

    def list(self) -> list[Persona]:
        """List personas, newest first."""
        return [Persona.model_validate(p) for p in self._personas.list()]

    def update(self, persona_id: str, payload: Any) -> Persona:
        """Update scalars and the taxonomy link set.

        Links are replaced when the payload carries ids, cleared when it
        only carries empty helper keys, and left alone otherwise.

        Raises:
            PersonaNotFoundError: If the persona does not exist.
            PersonaValidationError: If the payload is invalid.
        """
        if not isinstance(payload, Mapping):
            raise PersonaValidationError("Request body must be a JSON object")
        if self._personas.get(persona_id) is None:
            raise PersonaNotFoundError(persona_id)

        fields = sanitize_persona_scalars(payload)
        if "name" in fields:
            name = (fields["name"] or "").strip()
            if not name:
                raise PersonaValidationError("name cannot be empty")
            fields["name"] = name

        self._personas.update(persona_id, fields)

        taxonomy_ids = collect_taxonomy_ids(payload)
        if taxonomy_ids:
            self._personas.replace_taxonomies(persona_id, taxonomy_ids)
        elif has_taxonomy_helper_keys(payload):
            self._personas.replace_taxonomies(persona_id, [])

        logger.info("Updated persona %s (fields=%s)", persona_id, sorted(fields))
        return self.get(persona_id)

    def delete(self, persona_id: str) -> None:
        """Delete a persona.

        Raises:
            PersonaInUseError: If a debate roster still references it.
            PersonaNotFoundError: If the persona does not exist.
        """
        if self._debates.persona_in_use(persona_id):
            raise PersonaInUseError(persona_id)
        if not self._personas.delete(persona_id):
            raise PersonaNotFoundError(persona_id)
        logger.info("Deleted persona %s", persona_id)

    @staticmethod
    def needs_avatar(persona: Persona) -> bool:
        """True when the persona has no avatar yet."""
        return not persona.avatar_url
