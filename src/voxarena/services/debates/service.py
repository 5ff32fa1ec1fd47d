"""DebateService - lifecycle orchestration for debates and their rosters.

Enforces at the service layer:
- Required scalars on create (title, topic, format)
- Format composition rules whenever a roster is supplied
- The status transition table on update, plus the composition gate
  when a debate enters ACTIVE
- Replace-all participant semantics

Every gate runs before the first write, so a rejected update leaves no
trace. Uses Postgres repositories when db_conn exists, in-memory fallback
otherwise.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from voxarena.debate.composition import validate_composition
from voxarena.debate.errors import (
    CompositionViolationError,
    DebateNotFoundError,
    MalformedInputError,
)
from voxarena.debate.lifecycle import check_transition, current_status
from voxarena.debate.participants import NormalizedParticipant, norm_str, normalize_participants
from voxarena.models.debate import (
    DEFAULT_DEBATE_FORMAT,
    DEFAULT_DEBATE_STATUS,
    Debate,
    DebateParticipant,
    DebateStatus,
    PersonaSummary,
)
from voxarena.observability.tracing import set_span_attributes, traced_operation
from voxarena.persistence.repositories.debates import (
    DEBATE_SCALAR_COLUMNS,
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

_KNOWN_STATUSES = frozenset(s.value for s in DebateStatus)


class CreateDebateInput(BaseModel):
    """Parsed create payload."""

    model_config = ConfigDict(frozen=True)

    title: str
    topic: str
    description: str | None = None
    format: str
    status: str = DEFAULT_DEBATE_STATUS.value
    config: Any = None
    participants: list[NormalizedParticipant] = Field(default_factory=list)


class UpdateDebateInput(BaseModel):
    """Parsed update payload. Only fields in ``model_fields_set`` were supplied."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    topic: str | None = None
    description: str | None = None
    format: str | None = None
    status: str | None = None
    config: Any = None
    participants: list[NormalizedParticipant] = Field(default_factory=list)

    def scalar_changes(self) -> dict[str, Any]:
        """Column -> value for every supplied scalar."""
        return {c: getattr(self, c) for c in DEBATE_SCALAR_COLUMNS if c in self.model_fields_set}


def _require_mapping(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise MalformedInputError("Request body must be a JSON object")
    return payload


def parse_create(payload: Any) -> CreateDebateInput:
    """Parse and validate a create payload.

    Raises:
        MalformedInputError: Non-object body, missing title/topic/format, an
            unknown status, or an unknown participant role.
    """
    body = _require_mapping(payload)

    title = norm_str(body.get("title"))
    topic = norm_str(body.get("topic"))
    fmt = norm_str(body.get("format")).lower()
    status = norm_str(body.get("status") or DEFAULT_DEBATE_STATUS.value).upper()

    if not title:
        raise MalformedInputError("title is required")
    if not topic:
        raise MalformedInputError("topic is required")
    if not fmt:
        raise MalformedInputError("format is required")
    if status not in _KNOWN_STATUSES:
        raise MalformedInputError(f"unknown status: {status}")

    return CreateDebateInput(
        title=title,
        topic=topic,
        description=norm_str(body.get("description")) or None,
        format=fmt,
        status=status,
        config=body.get("config"),
        participants=normalize_participants(body.get("participants")),
    )


def parse_update(payload: Any) -> UpdateDebateInput:
    """Parse a partial update payload.

    A key is treated as supplied when present; ``status`` and ``config``
    also need a non-empty value. Supplied title/topic/format may not trim to
    empty.

    Raises:
        MalformedInputError: Non-object body, blank title/topic/format, or an
            unknown participant role.
    """
    body = _require_mapping(payload)
    changes: dict[str, Any] = {}

    for key in ("title", "topic", "format"):
        if key in body:
            value = norm_str(body[key])
            if not value:
                raise MalformedInputError(f"{key} cannot be empty")
            changes[key] = value.lower() if key == "format" else value
    if "description" in body:
        changes["description"] = norm_str(body["description"]) or None
    if body.get("status"):
        changes["status"] = norm_str(body["status"]).upper()
    if body.get("config") is not None:
        changes["config"] = body["config"]

    return UpdateDebateInput(
        **changes,
        participants=normalize_participants(body.get("participants")),
    )


class DebateService:
    """Service layer for debate operations.

    Usage:
        service = DebateService(db_conn=conn)
        debate = service.create({"title": "T", "topic": "Topic", "format": "structured"})
    """

    def __init__(self, db_conn: Connection | None = None) -> None:
        """Initialize DebateService.

        Args:
            db_conn: SQLAlchemy connection for Postgres. If None, uses in-memory.
        """
        self._db_conn = db_conn

        if db_conn is not None:
            self._debates: DebatesRepository | InMemoryDebatesRepository = DebatesRepository(
                db_conn
            )
            self._personas: PersonasRepository | InMemoryPersonasRepository = (
                PersonasRepository(db_conn)
            )
        else:
            self._debates = InMemoryDebatesRepository()
            self._personas = InMemoryPersonasRepository()

    @traced_operation("debate.create")
    def create(self, payload: Any) -> Debate:
        """Create a debate, optionally with an initial roster.

        Status is taken as given; the transition table does not apply to
        creation. An empty roster skips the composition check.

        Raises:
            MalformedInputError: If the payload is not usable.
            CompositionViolationError: If a supplied roster fails the format rule.
        """
        data = parse_create(payload)

        if data.participants:
            violation = validate_composition(data.format, data.participants)
            if violation:
                raise CompositionViolationError(violation, debate_format=data.format)

        debate_id = str(uuid.uuid4())
        created = self._debates.create(
            debate_id=debate_id,
            title=data.title,
            topic=data.topic,
            description=data.description,
            format=data.format,
            status=data.status,
            config=data.config,
            participants=data.participants,
        )
        set_span_attributes({"voxarena.debate_id": debate_id, "voxarena.status": data.status})
        logger.info(
            "Created debate %s (format=%s, status=%s, participants=%d)",
            debate_id,
            data.format,
            data.status,
            len(data.participants),
        )
        return self._to_model(created)

    def get(self, debate_id: str) -> Debate:
        """Get a debate with its ordered roster.

        Raises:
            DebateNotFoundError: If the debate does not exist.
        """
        debate = self._debates.get(debate_id)
        if debate is None:
            raise DebateNotFoundError(debate_id)
        return self._to_model(debate)

    def list(self) -> list[Debate]:
        """List debates, newest first."""
        debates = self._debates.list()
        summaries = self._personas.get_summaries(
            p["persona_id"] for d in debates for p in d["participants"]
        )
        return [self._to_model(d, summaries) for d in debates]

    @traced_operation("debate.update")
    def update(self, debate_id: str, payload: Any) -> Debate:
        """Apply a partial update as one unit.

        Gates, in order, all evaluated before any write:
        1. the debate exists (its row stays locked until the transaction ends);
        2. a non-empty roster satisfies the effective format;
        3. a supplied status is a legal transition, and entering ACTIVE
           re-checks composition against the roster that will be in effect.

        Raises:
            DebateNotFoundError: If the debate does not exist.
            MalformedInputError: If the payload is not usable.
            CompositionViolationError: If the roster fails the format rule.
            IllegalTransitionError: If the status change is not allowed.
        """
        current = self._debates.get_for_update(debate_id)
        if current is None:
            raise DebateNotFoundError(debate_id)

        changes = parse_update(payload)
        effective_format = (
            changes.format or current.get("format") or DEFAULT_DEBATE_FORMAT.value
        ).lower()

        if changes.participants:
            violation = validate_composition(effective_format, changes.participants)
            if violation:
                raise CompositionViolationError(violation, debate_format=effective_format)

        if changes.status is not None:
            from_status = current_status(current.get("status"))
            check_transition(from_status, changes.status)

            if changes.status == DebateStatus.ACTIVE.value:
                roster: list[Any] = list(changes.participants) or [
                    {"role": p["role"]} for p in current["participants"]
                ]
                violation = validate_composition(effective_format, roster)
                if violation:
                    raise CompositionViolationError(violation, debate_format=effective_format)

        if changes.participants:
            self._debates.replace_participants(debate_id, changes.participants)
        self._debates.update_scalars(debate_id, changes.scalar_changes())

        set_span_attributes(
            {"voxarena.debate_id": debate_id, "voxarena.status": changes.status}
        )
        logger.info(
            "Updated debate %s (fields=%s, participants_replaced=%s)",
            debate_id,
            sorted(changes.scalar_changes()),
            bool(changes.participants),
        )
        return self.get(debate_id)

    @traced_operation("debate.delete")
    def delete(self, debate_id: str) -> None:
        """Delete a debate; its participants are removed first.

        Raises:
            DebateNotFoundError: If the debate does not exist.
        """
        if not self._debates.delete(debate_id):
            raise DebateNotFoundError(debate_id)
        logger.info("Deleted debate %s", debate_id)

    def _to_model(
        self,
        debate: dict[str, Any],
        summaries: dict[str, dict[str, Any]] | None = None,
    ) -> Debate:
        participants = sorted(debate.get("participants", []), key=lambda p: p["order_index"])
        if summaries is None:
            summaries = self._personas.get_summaries(p["persona_id"] for p in participants)

        return Debate(
            id=debate["id"],
            title=debate["title"],
            topic=debate["topic"],
            description=debate.get("description"),
            format=debate["format"],
            status=debate["status"],
            config=debate.get("config"),
            participants=[
                DebateParticipant(
                    **p,
                    persona=(
                        PersonaSummary(**summaries[p["persona_id"]])
                        if p["persona_id"] in summaries
                        else None
                    ),
                )
                for p in participants
            ],
            created_at=debate["created_at"],
            updated_at=debate.get("updated_at"),
        )
