"""Debate status state machine.

Strict allow-list of status transitions, checked only when an update
supplies a new status. Creation accepts any known status as the start.

    DRAFT     -> DRAFT, ACTIVE
    ACTIVE    -> COMPLETED
    COMPLETED -> ARCHIVED
    ARCHIVED  -> (terminal)
"""

from __future__ import annotations

from voxarena.debate.errors import IllegalTransitionError
from voxarena.models.debate import DEFAULT_DEBATE_STATUS, DebateStatus

TRANSITIONS: dict[str, frozenset[str]] = {
    DebateStatus.DRAFT.value: frozenset({DebateStatus.DRAFT.value, DebateStatus.ACTIVE.value}),
    DebateStatus.ACTIVE.value: frozenset({DebateStatus.COMPLETED.value}),
    DebateStatus.COMPLETED.value: frozenset({DebateStatus.ARCHIVED.value}),
    DebateStatus.ARCHIVED.value: frozenset(),
}


def current_status(value: str | None) -> str:
    """Upper-cased persisted status, DRAFT when absent."""
    return (value or DEFAULT_DEBATE_STATUS.value).upper()


def can_transition(from_status: str, to_status: str) -> bool:
    """Return True if ``from_status -> to_status`` is in the table."""
    return to_status in TRANSITIONS.get(from_status, frozenset())


def check_transition(from_status: str, to_status: str) -> None:
    """Raise if the transition is not allowed.

    Raises:
        IllegalTransitionError: With the ``FROM → TO`` message.
    """
    if not can_transition(from_status, to_status):
        raise IllegalTransitionError(from_status, to_status)
