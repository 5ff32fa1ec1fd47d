"""Avatar prompt construction.

The prompt describes presentation, attire, and demeanour only. It never
asks the image model to guess ethnicity, skin tone, religion, or politics.
"""

from __future__ import annotations

from voxarena.models.persona import Persona

_AGE_HINTS = (
    ("Teen", "looks about 16-19 years old"),
    ("Young Adult", "looks about 20-25 years old"),
    ("Adult", "looks about 30-35 years old"),
    ("Middle", "looks about 45-50 years old"),
    ("Senior", "looks about 65-70 years old"),
)

_BACKGROUND = "neutral studio background, soft key light, shallow depth of field, natural color grading"


def _norm_category(value: str | None) -> str:
    return (value or "").strip().lower()


def taxonomy_term(persona: Persona, category: str) -> str | None:
    """First linked term whose category matches ``category`` case-insensitively."""
    wanted = _norm_category(category)
    for link in persona.taxonomies:
        if link.taxonomy is None:
            continue
        if _norm_category(link.taxonomy.category) == wanted:
            return link.taxonomy.term.strip() or None
    return None


def age_hint(age_group: str | None) -> str:
    """Map an age-group label to an apparent age range."""
    if age_group:
        for marker, hint in _AGE_HINTS:
            if marker in age_group:
                return hint
    return "adult"


def confidence_word(confidence: int | None) -> str | None:
    if confidence is None:
        return None
    if confidence >= 7:
        return "confident"
    if confidence <= 3:
        return "reserved"
    return "composed"


def build_avatar_prompt(persona: Persona) -> str:
    """Build a portrait prompt for a persona.

    Scalar attributes win over taxonomy terms of the same meaning; taxonomy
    terms are looked up by category (``agegroup``, ``genderidentity``,
    ``profession``, ``archetype``, ``temperament``, ``tone``,
    ``conflictstyle``).
    """
    display_name = persona.name or persona.nickname or "The persona"

    ages = age_hint(taxonomy_term(persona, "agegroup") or persona.age_group)

    gender = persona.gender_identity or taxonomy_term(persona, "genderidentity") or ""
    presentation = ", ".join(p for p in (gender, persona.pronouns or "") if p)
    presentation = presentation or "gender-neutral presentation"

    profession = persona.profession or taxonomy_term(persona, "profession") or "professional attire"

    vibe: list[str] = []
    archetype = taxonomy_term(persona, "archetype")
    temperament = persona.temperament or taxonomy_term(persona, "temperament")
    tone = persona.tone or taxonomy_term(persona, "tone")
    conflict_style = persona.conflict_style or taxonomy_term(persona, "conflictstyle")
    if archetype:
        vibe.append(archetype.lower())
    if temperament:
        vibe.append(temperament.lower())
    if tone:
        vibe.append(f"{tone.lower()} tone")
    confidence = confidence_word(persona.confidence)
    if confidence:
        vibe.append(confidence)
    if conflict_style:
        vibe.append(f"{conflict_style.lower()} posture")
    vibe_line = ", ".join(vibe) if vibe else "calm, approachable"

    return " ".join(
        [
            f"Create a photorealistic head-and-shoulders portrait of {display_name}.",
            f"Subject is {presentation}, {ages}.",
            f"Expression and posture reflect: {vibe_line}.",
            f"Wardrobe: {profession.lower()}; no logos or readable text.",
            "Framing: centered headshot, eyes toward camera, gentle smile or neutral expression.",
            f"Background: {_BACKGROUND}.",
            "Avoid stereotypes. Do not guess ethnicity, skin tone, religion, or politics.",
            "Output: detailed, high-quality portrait suitable for a UI avatar.",
        ]
    )
