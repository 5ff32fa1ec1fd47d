"""VoxArena Debate Domain Models.

Enumerations, default constants, and response models for debates and their
participant rosters. Wire format is camelCase (aliases); Python attributes
are snake_case.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DebateFormat(str, Enum):
    """Built-in debate archetypes."""

    STRUCTURED = "structured"
    PODCAST = "podcast"


class DebateStatus(str, Enum):
    """Debate lifecycle states. ARCHIVED is terminal."""

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class ParticipantRole(str, Enum):
    """Participant function within a debate."""

    MODERATOR = "MODERATOR"
    DEBATER = "DEBATER"
    HOST = "HOST"
    GUEST = "GUEST"


DEFAULT_DEBATE_FORMAT = DebateFormat.STRUCTURED
DEFAULT_DEBATE_STATUS = DebateStatus.DRAFT

FORMAT_CONFIG_DEFAULTS: dict[str, dict[str, Any]] = {
    DebateFormat.STRUCTURED.value: {
        "openingsSec": 60,
        "rebuttalsSec": 60,
        "closingsSec": 45,
        "crossfirePrompts": 1,
        "orderPolicy": "randomized",
    },
    DebateFormat.PODCAST.value: {
        "responsesSec": 45,
        "quickfire": True,
        "depth": "normal",
    },
}

FORMAT_LABELS: dict[str, str] = {
    DebateFormat.STRUCTURED.value: "Structured debate",
    DebateFormat.PODCAST.value: "Podcast conversation",
}

_ROLE_LABELS: dict[ParticipantRole, str] = {
    ParticipantRole.MODERATOR: "Moderator",
    ParticipantRole.DEBATER: "Debater",
    ParticipantRole.HOST: "Host",
    ParticipantRole.GUEST: "Guest",
}


def is_debate_format(value: str) -> bool:
    """Return True if value names one of the built-in formats."""
    return value in {f.value for f in DebateFormat}


def roles_for_format(fmt: str | None) -> list[dict[str, str]]:
    """Role options offered for a format.

    Podcast debates take hosts and guests; every other format (structured
    being the default) takes moderators and debaters.

    Args:
        fmt: Format name, case-insensitive. None is treated as structured.

    Returns:
        List of {"value", "label"} dicts in display order.
    """
    if (fmt or "").lower() == DebateFormat.PODCAST.value:
        roles = [ParticipantRole.HOST, ParticipantRole.GUEST]
    else:
        roles = [ParticipantRole.MODERATOR, ParticipantRole.DEBATER]
    return [{"value": r.value, "label": _ROLE_LABELS[r]} for r in roles]


class CamelModel(BaseModel):
    """Base for wire models: camelCase aliases, populate by field name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PersonaSummary(CamelModel):
    """Persona fields embedded in participant responses."""

    id: str
    name: str | None = None
    nickname: str | None = None
    avatar_url: str | None = None


class DebateParticipant(CamelModel):
    """A persisted participant row joined with its persona summary."""

    id: str
    debate_id: str
    persona_id: str
    role: str
    order_index: int = 0
    display_name: str | None = None
    voice_id: str | None = None
    meta: Any = None
    persona: PersonaSummary | None = None


class Debate(CamelModel):
    """Debate response model with its ordered participant roster."""

    id: str
    title: str
    topic: str
    description: str | None = None
    format: str
    status: str
    config: Any = None
    participants: list[DebateParticipant] = Field(default_factory=list)
    created_at: str
    updated_at: str | None = None


class FormatOption(CamelModel):
    """Format descriptor for clients building a debate."""

    value: str
    label: str
    config_defaults: dict[str, Any]
    roles: list[dict[str, str]]
