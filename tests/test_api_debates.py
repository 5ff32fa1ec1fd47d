"""API tests for /v1/debates.

Covers status codes, the camelCase wire format, and the error envelope
({code, message, details, request_id}) for every domain failure.
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

STRUCTURED_ROSTER = [
    {"personaId": "p-mod", "role": "MODERATOR"},
    {"personaId": "p-deb-1", "role": "DEBATER"},
    {"personaId": "p-deb-2", "role": "DEBATER"},
]


def _create(client: TestClient, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"title": "T", "topic": "Topic", "format": "structured"}
    payload.update(overrides)
    response = client.post("/v1/debates", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _assert_envelope(response: Any, status: int, code: str) -> dict[str, Any]:
    assert response.status_code == status, response.text
    body = response.json()
    assert set(body) == {"code", "message", "details", "request_id"}
    assert body["code"] == code
    assert body["request_id"] == response.headers["X-Request-Id"]
    return body


class TestCreateDebate:
    """POST /v1/debates."""

    def test_create_returns_201_and_camel_case(self, client: TestClient) -> None:
        body = _create(client, participants=STRUCTURED_ROSTER, config={"rounds": 3})

        assert body["status"] == "DRAFT"
        assert body["config"] == {"rounds": 3}
        assert "createdAt" in body
        assert body["updatedAt"] is None
        first = body["participants"][0]
        assert first["personaId"] == "p-mod"
        assert first["orderIndex"] == 0
        assert first["debateId"] == body["id"]
        assert first["persona"] is None

    def test_composition_violation(self, client: TestClient) -> None:
        response = client.post(
            "/v1/debates",
            json={
                "title": "T",
                "topic": "Topic",
                "format": "structured",
                "participants": [{"personaId": "p1", "role": "DEBATER"}],
            },
        )

        body = _assert_envelope(response, 400, "COMPOSITION_VIOLATION")
        assert body["message"] == "structured debate requires 1 moderator and at least 2 debaters"
        assert body["details"] == {"format": "structured"}
        assert client.get("/v1/debates").json() == []

    def test_missing_format_is_invalid_request(self, client: TestClient) -> None:
        response = client.post("/v1/debates", json={"title": "T", "topic": "Topic"})

        body = _assert_envelope(response, 400, "INVALID_REQUEST")
        assert body["message"] == "format is required"

    def test_non_object_body_is_invalid_request(self, client: TestClient) -> None:
        response = client.post("/v1/debates", json=["not", "an", "object"])

        body = _assert_envelope(response, 400, "INVALID_REQUEST")
        assert body["message"] == "Request body must be a JSON object"

    def test_unparseable_json_is_validation_failure(self, client: TestClient) -> None:
        response = client.post(
            "/v1/debates",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        _assert_envelope(response, 422, "REQUEST_VALIDATION_FAILED")

    def test_unknown_role_is_invalid_request(self, client: TestClient) -> None:
        response = client.post(
            "/v1/debates",
            json={
                "title": "T",
                "topic": "Topic",
                "format": "podcast",
                "participants": [{"personaId": "p1", "role": "JUDGE"}],
            },
        )

        body = _assert_envelope(response, 400, "INVALID_REQUEST")
        assert "JUDGE" in body["message"]

    def test_out_of_range_order_falls_back_to_position(self, client: TestClient) -> None:
        body = _create(
            client,
            format="podcast",
            participants=[
                {"personaId": "p-host", "role": "HOST", "order": 10**20},
                {"personaId": "p-guest", "role": "GUEST", "order": 5},
            ],
        )

        assert [(p["personaId"], p["orderIndex"]) for p in body["participants"]] == [
            ("p-host", 0),
            ("p-guest", 5),
        ]

    def test_request_id_is_echoed(self, client: TestClient) -> None:
        response = client.post(
            "/v1/debates", json={"title": "T"}, headers={"X-Request-Id": "req-123"}
        )

        body = _assert_envelope(response, 400, "INVALID_REQUEST")
        assert body["request_id"] == "req-123"


class TestReadDebates:
    """GET /v1/debates and /v1/debates/{id}."""

    def test_get_by_id(self, client: TestClient) -> None:
        created = _create(client)
        response = client.get(f"/v1/debates/{created['id']}")

        assert response.status_code == 200
        assert response.json()["title"] == "T"

    def test_get_missing(self, client: TestClient) -> None:
        body = _assert_envelope(client.get("/v1/debates/missing"), 404, "NOT_FOUND")
        assert body["message"] == "Not found"

    def test_list_newest_first(self, client: TestClient) -> None:
        first = _create(client, title="first")
        second = _create(client, title="second")

        ids = [d["id"] for d in client.get("/v1/debates").json()]
        assert ids == [second["id"], first["id"]]

    def test_participant_includes_persona_summary(self, client: TestClient) -> None:
        persona = client.post("/v1/personas", json={"name": "Ada"}).json()
        created = _create(
            client,
            format="podcast",
            participants=[
                {"personaId": persona["id"], "role": "HOST"},
                {"personaId": "someone", "role": "GUEST"},
            ],
        )

        host = created["participants"][0]
        assert host["persona"] == {
            "id": persona["id"],
            "name": "Ada",
            "nickname": None,
            "avatarUrl": None,
        }


class TestUpdateDebate:
    """PATCH /v1/debates/{id}."""

    def test_activate(self, client: TestClient) -> None:
        created = _create(client, participants=STRUCTURED_ROSTER)

        response = client.patch(f"/v1/debates/{created['id']}", json={"status": "ACTIVE"})

        assert response.status_code == 200
        assert response.json()["status"] == "ACTIVE"
        assert response.json()["updatedAt"] is not None

    def test_illegal_transition(self, client: TestClient) -> None:
        created = _create(client, status="ACTIVE")

        response = client.patch(f"/v1/debates/{created['id']}", json={"status": "ARCHIVED"})

        body = _assert_envelope(response, 400, "ILLEGAL_TRANSITION")
        assert body["message"] == "Illegal status transition: ACTIVE → ARCHIVED"
        assert body["details"] == {"from": "ACTIVE", "to": "ARCHIVED"}

    def test_activation_without_roster(self, client: TestClient) -> None:
        created = _create(client)

        response = client.patch(f"/v1/debates/{created['id']}", json={"status": "ACTIVE"})

        _assert_envelope(response, 400, "COMPOSITION_VIOLATION")
        assert client.get(f"/v1/debates/{created['id']}").json()["status"] == "DRAFT"

    def test_update_missing(self, client: TestClient) -> None:
        _assert_envelope(
            client.patch("/v1/debates/missing", json={"title": "x"}), 404, "NOT_FOUND"
        )

    def test_replace_roster(self, client: TestClient) -> None:
        created = _create(
            client,
            format="podcast",
            participants=[
                {"personaId": "h0", "role": "HOST"},
                {"personaId": "g0", "role": "GUEST"},
            ],
        )

        response = client.patch(
            f"/v1/debates/{created['id']}",
            json={
                "participants": [
                    {"personaId": "h1", "role": "HOST", "displayName": "Host"},
                    {"personaId": "g1", "role": "GUEST", "voiceId": "v1"},
                ]
            },
        )

        assert response.status_code == 200
        roster = response.json()["participants"]
        assert [(p["personaId"], p["displayName"], p["voiceId"]) for p in roster] == [
            ("h1", "Host", None),
            ("g1", None, "v1"),
        ]

    @pytest.mark.parametrize("field", ["title", "topic", "format"])
    def test_blank_required_field(self, client: TestClient, field: str) -> None:
        created = _create(client)

        response = client.patch(f"/v1/debates/{created['id']}", json={field: ""})

        body = _assert_envelope(response, 400, "INVALID_REQUEST")
        assert body["message"] == f"{field} cannot be empty"


class TestDeleteDebate:
    """DELETE /v1/debates/{id}."""

    def test_delete(self, client: TestClient) -> None:
        created = _create(client, participants=STRUCTURED_ROSTER)

        response = client.delete(f"/v1/debates/{created['id']}")

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        _assert_envelope(client.get(f"/v1/debates/{created['id']}"), 404, "NOT_FOUND")

    def test_delete_missing(self, client: TestClient) -> None:
        _assert_envelope(client.delete("/v1/debates/missing"), 404, "NOT_FOUND")


class TestUnhandledErrors:
    """Unexpected failures render the generic envelope."""

    def test_internal_error_hides_details(
        self, in_memory_env: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from voxarena.api.main import create_app
        from voxarena.services.debates import DebateService

        def boom(self: DebateService) -> list:
            raise RuntimeError("secret database detail")

        monkeypatch.setattr(DebateService, "list", boom)
        client = TestClient(create_app(), raise_server_exceptions=False)

        response = client.get("/v1/debates")

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "INTERNAL_ERROR"
        assert body["message"] == "An internal error occurred"
        assert "secret" not in response.text
