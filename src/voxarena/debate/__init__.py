"""VoxArena debate core: composition rules, roster normalization, lifecycle."""

from voxarena.debate.composition import (
    PODCAST_VIOLATION,
    STRUCTURED_VIOLATION,
    count_roles,
    validate_composition,
)
from voxarena.debate.errors import (
    CompositionViolationError,
    DebateError,
    DebateNotFoundError,
    IllegalTransitionError,
    MalformedInputError,
)
from voxarena.debate.lifecycle import TRANSITIONS, can_transition, check_transition
from voxarena.debate.participants import NormalizedParticipant, normalize_participants

__all__ = [
    "PODCAST_VIOLATION",
    "STRUCTURED_VIOLATION",
    "TRANSITIONS",
    "CompositionViolationError",
    "DebateError",
    "DebateNotFoundError",
    "IllegalTransitionError",
    "MalformedInputError",
    "NormalizedParticipant",
    "can_transition",
    "check_transition",
    "count_roles",
    "normalize_participants",
    "validate_composition",
]
