"""Persistence repositories for VoxArena.

Each repository has a Postgres implementation and an in-memory fallback
with the same methods.
"""

from voxarena.persistence.repositories.debates import (
    DebatesRepository,
    InMemoryDebatesRepository,
    clear_debates_store,
)
from voxarena.persistence.repositories.personas import (
    InMemoryPersonasRepository,
    PersonasRepository,
    clear_personas_store,
)
from voxarena.persistence.repositories.taxonomy import (
    InMemoryTaxonomyRepository,
    TaxonomyRepository,
    clear_taxonomy_store,
)

__all__ = [
    "DebatesRepository",
    "InMemoryDebatesRepository",
    "InMemoryPersonasRepository",
    "InMemoryTaxonomyRepository",
    "PersonasRepository",
    "TaxonomyRepository",
    "clear_all_stores",
    "clear_debates_store",
    "clear_personas_store",
    "clear_taxonomy_store",
]


def clear_all_stores() -> None:
    """Clear every in-memory store. For testing only."""
    clear_debates_store()
    clear_personas_store()
    clear_taxonomy_store()
