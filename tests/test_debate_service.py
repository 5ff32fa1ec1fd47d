"""Tests for DebateService against the in-memory repositories.

Covers the reference scenarios, every update gate, replace-all roster
semantics, and the guarantee that a rejected update writes nothing.
"""

from __future__ import annotations

from typing import Any

import pytest

from voxarena.debate.composition import PODCAST_VIOLATION, STRUCTURED_VIOLATION
from voxarena.debate.errors import (
    CompositionViolationError,
    DebateNotFoundError,
    IllegalTransitionError,
    MalformedInputError,
)
from voxarena.services.debates import DebateService, parse_create, parse_update
from voxarena.services.personas import PersonaService

STRUCTURED_ROSTER = [
    {"personaId": "p-mod", "role": "MODERATOR"},
    {"personaId": "p-deb-1", "role": "DEBATER"},
    {"personaId": "p-deb-2", "role": "DEBATER"},
]


@pytest.fixture
def service() -> DebateService:
    return DebateService()


def _create(service: DebateService, **overrides: Any) -> str:
    payload: dict[str, Any] = {"title": "T", "topic": "Topic", "format": "structured"}
    payload.update(overrides)
    return service.create(payload).id


class TestScenarios:
    """Reference scenarios for create and update."""

    def test_a_create_without_participants(self, service: DebateService) -> None:
        """A: a DRAFT structured debate with no roster is accepted."""
        debate = service.create(
            {"title": "T", "topic": "Topic", "format": "structured", "status": "DRAFT"}
        )

        assert debate.status == "DRAFT"
        assert debate.format == "structured"
        assert debate.participants == []

    def test_b_create_with_single_debater_is_rejected(self, service: DebateService) -> None:
        """B: a lone debater fails the structured rule and nothing is stored."""
        with pytest.raises(CompositionViolationError) as exc_info:
            service.create(
                {
                    "title": "T",
                    "topic": "Topic",
                    "format": "structured",
                    "participants": [{"personaId": "p1", "role": "DEBATER"}],
                }
            )

        assert exc_info.value.message == STRUCTURED_VIOLATION
        assert service.list() == []

    def test_c_activate_with_valid_persisted_roster(self, service: DebateService) -> None:
        """C: DRAFT -> ACTIVE passes when the persisted roster is complete."""
        debate_id = _create(service, participants=STRUCTURED_ROSTER)

        updated = service.update(debate_id, {"status": "ACTIVE"})

        assert updated.status == "ACTIVE"
        assert [p.role for p in updated.participants] == ["MODERATOR", "DEBATER", "DEBATER"]

    def test_d_active_to_archived_is_illegal(self, service: DebateService) -> None:
        """D: ACTIVE -> ARCHIVED is not in the table."""
        debate_id = _create(service, status="ACTIVE")

        with pytest.raises(IllegalTransitionError) as exc_info:
            service.update(debate_id, {"status": "ARCHIVED"})

        assert exc_info.value.message == "Illegal status transition: ACTIVE → ARCHIVED"
        assert service.get(debate_id).status == "ACTIVE"

    def test_e_replace_podcast_roster_using_persisted_format(
        self, service: DebateService
    ) -> None:
        """E: a roster without a format field is checked against the stored format."""
        debate_id = _create(
            service,
            format="podcast",
            participants=[
                {"personaId": "old-host", "role": "HOST"},
                {"personaId": "old-guest-1", "role": "GUEST"},
                {"personaId": "old-guest-2", "role": "GUEST"},
            ],
        )

        updated = service.update(
            debate_id,
            {
                "participants": [
                    {"personaId": "h1", "role": "HOST"},
                    {"personaId": "g1", "role": "GUEST"},
                ]
            },
        )

        assert [(p.persona_id, p.role, p.order_index) for p in updated.participants] == [
            ("h1", "HOST", 0),
            ("g1", "GUEST", 1),
        ]


class TestCreate:
    """Create-time parsing and defaults."""

    def test_status_defaults_to_draft(self, service: DebateService) -> None:
        assert service.create({"title": "T", "topic": "X", "format": "podcast"}).status == "DRAFT"

    def test_format_lower_and_status_upper(self, service: DebateService) -> None:
        debate = service.create(
            {"title": " T ", "topic": "X", "format": "PODCAST", "status": "completed"}
        )
        assert debate.title == "T"
        assert debate.format == "podcast"
        assert debate.status == "COMPLETED"

    def test_creation_skips_transition_table(self, service: DebateService) -> None:
        """Any known status is a valid starting point."""
        assert _create(service, status="ARCHIVED")

    @pytest.mark.parametrize(
        ("payload", "message"),
        [
            ({"topic": "X", "format": "structured"}, "title is required"),
            ({"title": "T", "topic": "  ", "format": "structured"}, "topic is required"),
            ({"title": "T", "topic": "X"}, "format is required"),
            ({"title": "T", "topic": "X", "format": "structured", "status": "PAUSED"},
             "unknown status: PAUSED"),
        ],
    )
    def test_rejects_bad_payload(
        self, service: DebateService, payload: dict[str, Any], message: str
    ) -> None:
        with pytest.raises(MalformedInputError) as exc_info:
            service.create(payload)
        assert exc_info.value.message == message

    @pytest.mark.parametrize("payload", [None, [], "text", 3])
    def test_rejects_non_object(self, service: DebateService, payload: Any) -> None:
        with pytest.raises(MalformedInputError) as exc_info:
            service.create(payload)
        assert exc_info.value.message == "Request body must be a JSON object"

    def test_blank_description_is_null_and_config_passes_through(
        self, service: DebateService
    ) -> None:
        debate = service.create(
            {
                "title": "T",
                "topic": "X",
                "format": "podcast",
                "description": "   ",
                "config": {"responsesSec": 30},
            }
        )
        assert debate.description is None
        assert debate.config == {"responsesSec": 30}

    def test_unknown_format_has_no_roster_rule(self, service: DebateService) -> None:
        debate = service.create(
            {
                "title": "T",
                "topic": "X",
                "format": "panel",
                "participants": [{"personaId": "p1", "role": "GUEST"}],
            }
        )
        assert len(debate.participants) == 1


class TestUpdateGates:
    """Every gate runs before any write."""

    def test_missing_debate(self, service: DebateService) -> None:
        with pytest.raises(DebateNotFoundError):
            service.update("missing", {"title": "x"})

    def test_missing_debate_is_reported_before_payload_errors(
        self, service: DebateService
    ) -> None:
        with pytest.raises(DebateNotFoundError):
            service.update("missing", None)

    def test_activation_with_incomplete_roster_is_rejected(
        self, service: DebateService
    ) -> None:
        debate_id = _create(service)

        with pytest.raises(CompositionViolationError) as exc_info:
            service.update(debate_id, {"status": "ACTIVE"})

        assert exc_info.value.message == STRUCTURED_VIOLATION
        assert service.get(debate_id).status == "DRAFT"

    def test_activation_checks_supplied_roster(self, service: DebateService) -> None:
        debate_id = _create(service)

        updated = service.update(debate_id, {"status": "ACTIVE", "participants": STRUCTURED_ROSTER})

        assert updated.status == "ACTIVE"
        assert len(updated.participants) == 3

    def test_format_change_applies_to_supplied_roster(self, service: DebateService) -> None:
        debate_id = _create(service, participants=STRUCTURED_ROSTER)

        with pytest.raises(CompositionViolationError) as exc_info:
            service.update(debate_id, {"format": "podcast", "participants": STRUCTURED_ROSTER})

        assert exc_info.value.message == PODCAST_VIOLATION
        assert exc_info.value.debate_format == "podcast"

    def test_activation_uses_new_format_against_persisted_roster(
        self, service: DebateService
    ) -> None:
        debate_id = _create(service, participants=STRUCTURED_ROSTER)

        with pytest.raises(CompositionViolationError) as exc_info:
            service.update(debate_id, {"format": "podcast", "status": "ACTIVE"})

        assert exc_info.value.message == PODCAST_VIOLATION

    def test_draft_to_draft_is_allowed(self, service: DebateService) -> None:
        debate_id = _create(service)
        assert service.update(debate_id, {"status": "draft"}).status == "DRAFT"

    def test_rejected_update_writes_nothing(self, service: DebateService) -> None:
        """A failing transition leaves scalars and roster untouched."""
        debate_id = _create(service, participants=STRUCTURED_ROSTER, status="ACTIVE")
        before = service.get(debate_id)

        with pytest.raises(IllegalTransitionError):
            service.update(
                debate_id,
                {
                    "title": "Renamed",
                    "status": "DRAFT",
                    "participants": [
                        {"personaId": "x1", "role": "MODERATOR"},
                        {"personaId": "x2", "role": "DEBATER"},
                        {"personaId": "x3", "role": "DEBATER"},
                    ],
                },
            )

        after = service.get(debate_id)
        assert after.title == "T"
        assert after.updated_at == before.updated_at
        assert [p.persona_id for p in after.participants] == ["p-mod", "p-deb-1", "p-deb-2"]

    @pytest.mark.parametrize("key", ["title", "topic", "format"])
    def test_blank_required_scalar_is_rejected(self, service: DebateService, key: str) -> None:
        debate_id = _create(service)
        with pytest.raises(MalformedInputError) as exc_info:
            service.update(debate_id, {key: "  "})
        assert exc_info.value.message == f"{key} cannot be empty"


class TestUpdateWrites:
    """Partial updates and roster replacement."""

    def test_scalar_only_update_keeps_roster(self, service: DebateService) -> None:
        debate_id = _create(service, participants=STRUCTURED_ROSTER)

        updated = service.update(debate_id, {"title": "New", "description": "About"})

        assert updated.title == "New"
        assert updated.description == "About"
        assert updated.topic == "Topic"
        assert updated.updated_at is not None
        assert len(updated.participants) == 3

    def test_empty_participants_list_leaves_roster(self, service: DebateService) -> None:
        debate_id = _create(service, participants=STRUCTURED_ROSTER)
        assert len(service.update(debate_id, {"participants": []}).participants) == 3

    def test_null_status_is_ignored(self, service: DebateService) -> None:
        debate_id = _create(service, status="ACTIVE")
        assert service.update(debate_id, {"status": None, "title": "x"}).status == "ACTIVE"

    def test_full_lifecycle(self, service: DebateService) -> None:
        debate_id = _create(service, participants=STRUCTURED_ROSTER)
        for status in ("ACTIVE", "COMPLETED", "ARCHIVED"):
            assert service.update(debate_id, {"status": status}).status == status

        with pytest.raises(IllegalTransitionError):
            service.update(debate_id, {"status": "DRAFT"})


class TestReadAndDelete:
    """Listing order, persona summaries, and deletion."""

    def test_list_is_newest_first(self, service: DebateService) -> None:
        first = _create(service, title="first")
        second = _create(service, title="second")
        assert [d.id for d in service.list()] == [second, first]

    def test_participants_carry_persona_summary(self, service: DebateService) -> None:
        persona = PersonaService().create({"name": "Ada", "nickname": "A"})
        debate_id = _create(
            service,
            format="podcast",
            participants=[
                {"personaId": persona.id, "role": "HOST"},
                {"personaId": "unknown", "role": "GUEST"},
            ],
        )

        host, guest = service.get(debate_id).participants
        assert host.persona is not None
        assert host.persona.name == "Ada"
        assert guest.persona is None

    def test_participants_sorted_by_order(self, service: DebateService) -> None:
        debate_id = _create(
            service,
            format="podcast",
            participants=[
                {"personaId": "g", "role": "GUEST", "order": 2},
                {"personaId": "h", "role": "HOST", "order": 1},
            ],
        )
        assert [p.persona_id for p in service.get(debate_id).participants] == ["h", "g"]

    def test_delete(self, service: DebateService) -> None:
        debate_id = _create(service, participants=STRUCTURED_ROSTER)
        service.delete(debate_id)

        with pytest.raises(DebateNotFoundError):
            service.get(debate_id)
        with pytest.raises(DebateNotFoundError):
            service.delete(debate_id)


class TestParsers:
    """parse_create / parse_update produce typed inputs."""

    def test_parse_update_tracks_supplied_fields(self) -> None:
        changes = parse_update({"title": "x", "description": "", "config": None})
        assert changes.scalar_changes() == {"title": "x", "description": None}

    def test_parse_create_normalizes_participants(self) -> None:
        data = parse_create(
            {
                "title": "T",
                "topic": "X",
                "format": "podcast",
                "participants": [{"personaId": "p", "role": "host"}, {"role": "GUEST"}],
            }
        )
        assert [p.persona_id for p in data.participants] == ["p"]
