"""Participant Composition Validator.

Pure check of a roster against its format's minimum-role rule:

- structured: at least 1 MODERATOR and at least 2 DEBATER
- podcast: at least 1 HOST and at least 1 GUEST
- any other format: no constraint

Only the role of each participant is inspected. The function has no side
effects and never raises for well-typed input, so it can be applied both to
a proposed roster and to a persisted one.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Any

from voxarena.models.debate import DebateFormat, ParticipantRole

STRUCTURED_VIOLATION = "structured debate requires 1 moderator and at least 2 debaters"
PODCAST_VIOLATION = "podcast debate requires 1 host and at least 1 guest"

# format -> (minimum count per role, violation message)
COMPOSITION_RULES: dict[str, tuple[dict[ParticipantRole, int], str]] = {
    DebateFormat.STRUCTURED.value: (
        {ParticipantRole.MODERATOR: 1, ParticipantRole.DEBATER: 2},
        STRUCTURED_VIOLATION,
    ),
    DebateFormat.PODCAST.value: (
        {ParticipantRole.HOST: 1, ParticipantRole.GUEST: 1},
        PODCAST_VIOLATION,
    ),
}


def _role_of(participant: Any) -> str | None:
    if isinstance(participant, Mapping):
        role = participant.get("role")
    else:
        role = getattr(participant, "role", None)
    if isinstance(role, ParticipantRole):
        return role.value
    return role if isinstance(role, str) else None


def count_roles(participants: Iterable[Any]) -> Counter[str]:
    """Count the roles present in a roster (its composition)."""
    return Counter(role for role in map(_role_of, participants) if role)


def validate_composition(debate_format: str | None, participants: Iterable[Any]) -> str | None:
    """Check whether a roster satisfies the minimum composition for a format.

    Args:
        debate_format: Format name; compared lower-cased.
        participants: Objects or mappings exposing ``role``.

    Returns:
        None if the roster is valid, else the violation message.
    """
    rule = COMPOSITION_RULES.get((debate_format or "").lower())
    if rule is None:
        return None

    minimums, message = rule
    counts = count_roles(participants)
    for role, minimum in minimums.items():
        if counts[role.value] < minimum:
            return message
    return None
