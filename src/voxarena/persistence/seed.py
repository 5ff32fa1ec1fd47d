"""Idempotent taxonomy seed for VoxArena.

Loads the bundled term catalogue (``seed_data/taxonomy.json``) and upserts it
keyed on ``(category, term)``. Existing rows are re-slugged, take the
catalogue description, and are re-activated; rows outside the catalogue are
left untouched. Region terms that older data filed under ``culture`` are moved
to ``region`` before regions are seeded.

Usage:
    with begin_app_conn() as conn:
        summary = seed_taxonomy(conn)
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from voxarena.persistence.repositories.taxonomy import (
    InMemoryTaxonomyRepository,
    TaxonomyRepository,
)
from voxarena.services.taxonomy.service import slugify

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

SEED_DATA_PATH = Path(__file__).parent / "seed_data" / "taxonomy.json"

REGION_CATEGORY = "region"
LEGACY_REGION_CATEGORY = "culture"


def load_seed_catalogue(path: Path | None = None) -> list[dict[str, Any]]:
    """Load the term catalogue.

    Returns:
        List of ``{"category": str, "terms": [{"term", "description"}]}``
        groups in seeding order.
    """
    with open(path or SEED_DATA_PATH, encoding="utf-8") as f:
        return json.load(f)


def upsert_terms(
    repo: TaxonomyRepository | InMemoryTaxonomyRepository,
    category: str,
    items: Iterable[Mapping[str, Any]],
) -> dict[str, int]:
    """Create missing terms and refresh existing ones in ``category``.

    Returns:
        Counts of created and updated rows.
    """
    counts = {"created": 0, "updated": 0}
    for item in items:
        term = item["term"]
        fields = {
            "slug": slugify(term),
            "description": item.get("description") or "",
            "is_active": True,
        }
        existing = repo.find_term(category=category, term=term)
        if existing is None:
            repo.create_term(
                term_id=str(uuid.uuid4()),
                term=term,
                category=category,
                category_id=None,
                **fields,
            )
            counts["created"] += 1
        else:
            repo.update_term(existing["id"], fields)
            counts["updated"] += 1
    return counts


def seed_taxonomy(
    conn: Connection | None = None,
    catalogue: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Upsert the whole catalogue.

    Args:
        conn: Transactional connection for Postgres. If None, seeds the
            in-memory store.
        catalogue: Groups to seed. Defaults to the bundled catalogue.

    Returns:
        ``{"categories": {category: {"created", "updated"}}, "reclassified": int}``
    """
    repo: TaxonomyRepository | InMemoryTaxonomyRepository = (
        TaxonomyRepository(conn) if conn is not None else InMemoryTaxonomyRepository()
    )
    if catalogue is None:
        catalogue = load_seed_catalogue()

    categories: dict[str, dict[str, int]] = {}
    reclassified = 0
    for group in catalogue:
        category = group["category"]
        items = group["terms"]

        if category == REGION_CATEGORY:
            reclassified += repo.reclassify_terms(
                from_category=LEGACY_REGION_CATEGORY,
                to_category=REGION_CATEGORY,
                terms=[item["term"] for item in items],
            )

        counts = upsert_terms(repo, category, items)
        totals = categories.setdefault(category, {"created": 0, "updated": 0})
        totals["created"] += counts["created"]
        totals["updated"] += counts["updated"]
        logger.info(
            "Seeded %s: %d created, %d updated", category, counts["created"], counts["updated"]
        )

    if reclassified:
        logger.info(
            "Moved %d legacy %s terms to %s",
            reclassified,
            LEGACY_REGION_CATEGORY,
            REGION_CATEGORY,
        )
    return {"categories": categories, "reclassified": reclassified}
