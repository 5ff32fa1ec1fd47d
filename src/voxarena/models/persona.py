"""VoxArena Persona Models.

A persona holds scalar descriptive attributes plus links to taxonomy terms.
"""

from __future__ import annotations

from pydantic import Field

from voxarena.models.debate import CamelModel
from voxarena.models.taxonomy import TaxonomyTerm

# Wire key -> column name for every scalar attribute a client may set.
PERSONA_SCALAR_FIELDS: dict[str, str] = {
    "name": "name",
    "nickname": "nickname",
    "description": "description",
    "avatarUrl": "avatar_url",
    "profession": "profession",
    "ageGroup": "age_group",
    "genderIdentity": "gender_identity",
    "pronouns": "pronouns",
    "accentNote": "accent_note",
    "temperament": "temperament",
    "confidence": "confidence",
    "verbosity": "verbosity",
    "tone": "tone",
    "vocabularyStyle": "vocabulary_style",
    "conflictStyle": "conflict_style",
    "debateApproach": "debate_approach",
    "quirks": "quirks",
}

PERSONA_LIST_COLUMNS = frozenset({"debate_approach", "quirks"})
PERSONA_INT_COLUMNS = frozenset({"confidence", "verbosity"})


class PersonaTaxonomyLink(CamelModel):
    """Join row between a persona and a taxonomy term."""

    taxonomy_id: str
    taxonomy: TaxonomyTerm | None = None


class Persona(CamelModel):
    """Persona response model."""

    id: str
    name: str
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
    debate_approach: list[str] = Field(default_factory=list)
    quirks: list[str] = Field(default_factory=list)
    taxonomies: list[PersonaTaxonomyLink] = Field(default_factory=list)
    created_at: str
    updated_at: str | None = None
