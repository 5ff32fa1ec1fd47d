"""Tests for avatar prompt construction."""

from __future__ import annotations

from typing import Any

import pytest

from voxarena.avatar.prompt import age_hint, build_avatar_prompt, confidence_word, taxonomy_term
from voxarena.models.persona import Persona, PersonaTaxonomyLink
from voxarena.models.taxonomy import TaxonomyTerm


def _persona(links: dict[str, str] | None = None, **fields: Any) -> Persona:
    taxonomies = [
        PersonaTaxonomyLink(
            taxonomy_id=f"t-{i}",
            taxonomy=TaxonomyTerm(
                id=f"t-{i}",
                term=term,
                slug=term.lower(),
                category=category,
                created_at="2026-01-01T00:00:00Z",
            ),
        )
        for i, (category, term) in enumerate((links or {}).items())
    ]
    fields.setdefault("name", "Ada")
    return Persona(id="p1", created_at="2026-01-01T00:00:00Z", taxonomies=taxonomies, **fields)


class TestHelpers:
    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("Teen", "looks about 16-19 years old"),
            ("Young Adult", "looks about 20-25 years old"),
            ("Adult", "looks about 30-35 years old"),
            ("Middle Age", "looks about 45-50 years old"),
            ("Senior", "looks about 65-70 years old"),
            ("unknown", "adult"),
            (None, "adult"),
        ],
    )
    def test_age_hint(self, label: str | None, expected: str) -> None:
        assert age_hint(label) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, None), (1, "reserved"), (3, "reserved"), (5, "composed"), (7, "confident")],
    )
    def test_confidence_word(self, value: int | None, expected: str | None) -> None:
        assert confidence_word(value) == expected

    def test_taxonomy_term_matches_category_case_insensitively(self) -> None:
        persona = _persona({"Archetype": "Mentor"})

        assert taxonomy_term(persona, "archetype") == "Mentor"
        assert taxonomy_term(persona, "tone") is None


class TestBuildAvatarPrompt:
    def test_minimal_persona(self) -> None:
        prompt = build_avatar_prompt(_persona())

        assert prompt.startswith("Create a photorealistic head-and-shoulders portrait of Ada.")
        assert "Subject is gender-neutral presentation, adult." in prompt
        assert "Expression and posture reflect: calm, approachable." in prompt
        assert "Wardrobe: professional attire; no logos or readable text." in prompt
        assert "Do not guess ethnicity, skin tone, religion, or politics." in prompt

    def test_scalars_and_terms(self) -> None:
        persona = _persona(
            {"archetype": "Mentor", "agegroup": "Senior", "tone": "Dry"},
            gender_identity="Woman",
            pronouns="she/her",
            profession="Surgeon",
            temperament="Calm",
            confidence=8,
            conflict_style="Assertive",
            age_group="Teen",
        )

        prompt = build_avatar_prompt(persona)

        assert "Subject is Woman, she/her, looks about 65-70 years old." in prompt
        assert (
            "Expression and posture reflect: mentor, calm, dry tone, confident, assertive posture."
            in prompt
        )
        assert "Wardrobe: surgeon;" in prompt

    def test_scalar_wins_over_term(self) -> None:
        persona = _persona({"tone": "Dry"}, tone="Warm")

        assert "warm tone" in build_avatar_prompt(persona)

    def test_nickname_fallback(self) -> None:
        persona = _persona(name="", nickname="Ace")

        assert "portrait of Ace." in build_avatar_prompt(persona)
