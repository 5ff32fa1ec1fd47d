"""Participant payload normalization.

Turns an untrusted participants payload into typed ``NormalizedParticipant``
entries. Non-list input yields an empty roster. Entries whose personaId or
role is empty after trimming are dropped silently. A non-empty role outside
the four known roles is rejected, since it can never be persisted.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from voxarena.debate.errors import MalformedInputError
from voxarena.models.debate import ParticipantRole

_VALID_ROLES = {r.value: r for r in ParticipantRole}

# order_index is a 32-bit INTEGER column.
ORDER_MIN = -(2**31)
ORDER_MAX = 2**31 - 1


class NormalizedParticipant(BaseModel):
    """A clean participant entry ready for validation and persistence."""

    model_config = ConfigDict(frozen=True)

    persona_id: str
    role: ParticipantRole
    order: int
    display_name: str | None = None
    voice_id: str | None = None
    meta: Any = None

    def to_payload(self) -> dict[str, Any]:
        """Return the entry in the camelCase shape clients submit."""
        return {
            "personaId": self.persona_id,
            "role": self.role.value,
            "order": self.order,
            "displayName": self.display_name,
            "voiceId": self.voice_id,
            "meta": self.meta,
        }


def norm_str(value: Any, fallback: str = "") -> str:
    """Trim a string value; anything that is not a string becomes ``fallback``."""
    return (value if isinstance(value, str) else fallback).strip()


def coerce_order(value: Any, position: int) -> int:
    """Use a numeric order when supplied, else the element's input position.

    Orders outside the storable integer range also fall back to the position.
    """
    if isinstance(value, bool):
        return position
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and ORDER_MIN <= value <= ORDER_MAX:
        return value
    return position


def parse_role(value: Any) -> ParticipantRole | None:
    """Upper-case a role value into a ParticipantRole.

    Returns:
        The role, or None when the value is empty after trimming.

    Raises:
        MalformedInputError: If the value is non-empty but not a known role.
    """
    raw = norm_str(value).upper()
    if not raw:
        return None
    role = _VALID_ROLES.get(raw)
    if role is None:
        raise MalformedInputError(f"unknown participant role: {raw}")
    return role


def normalize_participants(raw: Any) -> list[NormalizedParticipant]:
    """Normalize a participants payload.

    Args:
        raw: Any value. Only a list (or tuple) of mappings yields entries.

    Returns:
        Order-stable list of normalized participants, malformed entries
        (missing personaId or role) removed.

    Raises:
        MalformedInputError: If an entry names an unknown role.
    """
    if not isinstance(raw, (list, tuple)):
        return []

    result: list[NormalizedParticipant] = []
    for position, item in enumerate(raw):
        entry: Mapping[str, Any] = item if isinstance(item, Mapping) else {}

        persona_id = norm_str(entry.get("personaId"))
        role = parse_role(entry.get("role")) if persona_id else None
        if role is None:
            continue

        display_name = entry.get("displayName")
        voice_id = entry.get("voiceId")
        result.append(
            NormalizedParticipant(
                persona_id=persona_id,
                role=role,
                order=coerce_order(entry.get("order"), position),
                display_name=display_name if isinstance(display_name, str) else None,
                voice_id=voice_id if isinstance(voice_id, str) else None,
                meta=entry.get("meta"),
            )
        )
    return result
