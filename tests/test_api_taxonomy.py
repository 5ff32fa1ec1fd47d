"""API tests for taxonomy terms, categories, formats, and health."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from voxarena import __version__
from voxarena.services.taxonomy.service import category_key_from_name, clamp_page, slugify


def _category(client: TestClient, full_name: str, **extra: Any) -> dict[str, Any]:
    response = client.post("/v1/taxonomycategories", json={"fullName": full_name, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def _term(client: TestClient, term: str, category: str, **extra: Any) -> dict[str, Any]:
    response = client.post(
        "/v1/taxonomy/terms", json={"term": term, "category": category, **extra}
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestHelpers:
    """Slug, key, and paging helpers."""

    @pytest.mark.parametrize(
        ("term", "slug"),
        [("Socratic Method", "socratic-method"), ("  Dry Wit! ", "dry-wit"), ("A  B", "a-b")],
    )
    def test_slugify(self, term: str, slug: str) -> None:
        assert slugify(term) == slug

    def test_category_key_strips_accents(self) -> None:
        assert category_key_from_name("Régional Accent / Dialect") == "regional-accent-dialect"

    @pytest.mark.parametrize(
        ("page", "size", "expected"),
        [
            (None, None, (1, 20)),
            ("0", "500", (1, 100)),
            ("3", "0", (3, 1)),
            ("abc", "xyz", (1, 20)),
        ],
    )
    def test_clamp_page(self, page: Any, size: Any, expected: tuple[int, int]) -> None:
        assert clamp_page(page, size, 20) == expected


class TestCategories:
    """/v1/taxonomycategories."""

    def test_create_derives_key(self, client: TestClient) -> None:
        body = _category(client, "Age Group", description="How old")

        assert body["key"] == "age-group"
        assert body["fullName"] == "Age Group"
        assert body["description"] == "How old"

    def test_create_requires_full_name(self, client: TestClient) -> None:
        response = client.post("/v1/taxonomycategories", json={"key": "x"})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST"
        assert response.json()["message"] == "Full name is required"

    def test_duplicate_key_conflicts(self, client: TestClient) -> None:
        _category(client, "Age Group")

        response = client.post(
            "/v1/taxonomycategories", json={"fullName": "Ages", "key": "age-group"}
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_page_with_usage(self, client: TestClient) -> None:
        _category(client, "Philosophy")
        _category(client, "Archetype")
        _term(client, "Stoicism", "philosophy")
        _term(client, "Existentialism", "Philosophy")

        body = client.get("/v1/taxonomycategories", params={"pageSize": "1"}).json()

        assert body["total"] == 2
        assert body["page"] == 1
        assert body["pageSize"] == 1
        assert [c["fullName"] for c in body["items"]] == ["Archetype"]

        second = client.get(
            "/v1/taxonomycategories", params={"page": "2", "pageSize": "1"}
        ).json()
        assert second["items"][0]["fullName"] == "Philosophy"
        assert second["items"][0]["termUsage"] == 2

    def test_get_update_delete(self, client: TestClient) -> None:
        created = _category(client, "Tone")
        _term(client, "Warm", "tone")

        updated = client.put(
            f"/v1/taxonomycategories/{created['id']}",
            json={"fullName": "Voice Tone", "key": "voice-tone"},
        )
        assert updated.status_code == 200
        assert updated.json()["key"] == "voice-tone"
        assert updated.json()["description"] is None

        fetched = client.get(f"/v1/taxonomycategories/{created['id']}").json()
        assert fetched["fullName"] == "Voice Tone"

        assert client.delete(f"/v1/taxonomycategories/{created['id']}").json() == {"ok": True}
        assert client.get(f"/v1/taxonomycategories/{created['id']}").status_code == 404

    def test_delete_removes_terms(self, client: TestClient) -> None:
        created = _category(client, "Tone")
        _term(client, "Warm", "tone")

        client.delete(f"/v1/taxonomycategories/{created['id']}")

        assert client.get("/v1/taxonomy").json() == []


class TestTerms:
    """/v1/taxonomy and /v1/taxonomy/terms."""

    def test_create_resolves_category_by_full_name(self, client: TestClient) -> None:
        category = _category(client, "Debate Habit")

        body = _term(client, "Rhetorical Questions", "debate habit")

        assert body["category"] == "debate-habit"
        assert body["categoryId"] == category["id"]
        assert body["slug"] == "rhetorical-questions"
        assert body["isActive"] is True
        assert body["description"] == ""

    def test_create_with_unknown_category_keeps_value(self, client: TestClient) -> None:
        body = _term(client, "Calm", "temperament")

        assert body["category"] == "temperament"
        assert body["categoryId"] is None

    @pytest.mark.parametrize(
        ("payload", "message"),
        [({"category": "tone"}, "Term is required"), ({"term": "Warm"}, "Category is required")],
    )
    def test_create_validation(
        self, client: TestClient, payload: dict[str, Any], message: str
    ) -> None:
        response = client.post("/v1/taxonomy/terms", json=payload)

        assert response.status_code == 400
        assert response.json()["message"] == message

    def test_duplicate_term_conflicts(self, client: TestClient) -> None:
        _term(client, "Warm", "tone")

        response = client.post("/v1/taxonomy/terms", json={"term": "Warm", "category": "tone"})

        assert response.status_code == 409
        assert response.json()["message"] == "This term already exists in the selected category."

    def test_list_sorted_and_filtered(self, client: TestClient) -> None:
        _term(client, "Warm", "tone")
        _term(client, "Blunt", "tone")
        _term(client, "Mentor", "archetype")

        listed = client.get("/v1/taxonomy").json()
        assert [(t["category"], t["term"]) for t in listed] == [
            ("archetype", "Mentor"),
            ("tone", "Blunt"),
            ("tone", "Warm"),
        ]
        assert [t["term"] for t in client.get("/v1/taxonomy?category=tone").json()] == [
            "Blunt",
            "Warm",
        ]
        assert client.get("/v1/taxonomy/categories").json() == ["archetype", "tone"]

    def test_page_terms(self, client: TestClient) -> None:
        _category(client, "Tone")
        for term in ("Warm", "Blunt", "Dry"):
            _term(client, term, "tone")

        body = client.get("/v1/taxonomy/terms", params={"category": "Tone", "pageSize": "2"}).json()

        assert body["total"] == 3
        assert [t["term"] for t in body["items"]] == ["Blunt", "Dry"]

    def test_page_terms_requires_category(self, client: TestClient) -> None:
        response = client.get("/v1/taxonomy/terms")

        assert response.status_code == 400
        assert response.json()["message"] == "Missing category"

    def test_update_reslugs(self, client: TestClient) -> None:
        created = _term(client, "Warm", "tone")

        response = client.put(
            f"/v1/taxonomy/terms/{created['id']}", json={"term": "Very Warm", "isActive": False}
        )

        assert response.status_code == 200
        assert response.json()["slug"] == "very-warm"
        assert response.json()["isActive"] is False

    def test_update_conflict(self, client: TestClient) -> None:
        _term(client, "Warm", "tone")
        other = _term(client, "Cold", "tone")

        response = client.put(f"/v1/taxonomy/terms/{other['id']}", json={"term": "Warm"})

        assert response.status_code == 409

    def test_get_and_delete(self, client: TestClient) -> None:
        created = _term(client, "Warm", "tone")

        assert client.get(f"/v1/taxonomy/terms/{created['id']}").json()["term"] == "Warm"
        assert client.delete(f"/v1/taxonomy/terms/{created['id']}").json() == {"ok": True}
        assert client.get(f"/v1/taxonomy/terms/{created['id']}").json()["code"] == "NOT_FOUND"
        assert client.delete(f"/v1/taxonomy/terms/{created['id']}").status_code == 404


class TestFormatsAndHealth:
    """/v1/formats and /health."""

    def test_formats(self, client: TestClient) -> None:
        formats = {f["value"]: f for f in client.get("/v1/formats").json()}

        assert set(formats) == {"structured", "podcast"}
        assert formats["podcast"]["configDefaults"]["responsesSec"] == 45
        assert [r["value"] for r in formats["structured"]["roles"]] == ["MODERATOR", "DEBATER"]
        assert [r["value"] for r in formats["podcast"]["roles"]] == ["HOST", "GUEST"]

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["version"] == __version__
        assert "X-Request-Id" in response.headers
