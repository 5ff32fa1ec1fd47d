"""Typed errors raised by the debate core and the debate service.

Every error carries exactly one human-readable ``message``. The composition
and transition messages are stable and asserted on by clients.
"""

from __future__ import annotations


class DebateError(Exception):
    """Base exception for debate operations."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DebateNotFoundError(DebateError):
    """Raised when the target debate does not exist."""

    def __init__(self, debate_id: str) -> None:
        self.debate_id = debate_id
        super().__init__("Not found")


class CompositionViolationError(DebateError):
    """Raised when a roster fails its format's minimum-role rule."""

    def __init__(self, message: str, *, debate_format: str) -> None:
        self.debate_format = debate_format
        super().__init__(message)


class IllegalTransitionError(DebateError):
    """Raised when a status change is not in the transition table."""

    def __init__(self, from_status: str, to_status: str) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Illegal status transition: {from_status} → {to_status}")


class MalformedInputError(DebateError):
    """Raised for a non-object body or a missing required scalar."""

    pass
