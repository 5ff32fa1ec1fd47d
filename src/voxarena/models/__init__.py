"""VoxArena domain models: pydantic models for debates, personas, and taxonomy."""

from voxarena.models.debate import (
    DEFAULT_DEBATE_FORMAT,
    DEFAULT_DEBATE_STATUS,
    FORMAT_CONFIG_DEFAULTS,
    FORMAT_LABELS,
    Debate,
    DebateFormat,
    DebateParticipant,
    DebateStatus,
    FormatOption,
    ParticipantRole,
    PersonaSummary,
    is_debate_format,
    roles_for_format,
)
from voxarena.models.persona import Persona, PersonaTaxonomyLink
from voxarena.models.taxonomy import CategoryPage, TaxonomyCategory, TaxonomyTerm, TermPage

__all__ = [
    "DEFAULT_DEBATE_FORMAT",
    "DEFAULT_DEBATE_STATUS",
    "FORMAT_CONFIG_DEFAULTS",
    "FORMAT_LABELS",
    "CategoryPage",
    "Debate",
    "DebateFormat",
    "DebateParticipant",
    "DebateStatus",
    "FormatOption",
    "ParticipantRole",
    "Persona",
    "PersonaSummary",
    "PersonaTaxonomyLink",
    "TaxonomyCategory",
    "TaxonomyTerm",
    "TermPage",
    "is_debate_format",
    "roles_for_format",
]
