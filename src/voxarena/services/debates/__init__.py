"""Debates service module for VoxArena.

Provides DebateService: create, read, partial update with lifecycle and
composition gates, and delete.
"""

from voxarena.services.debates.service import (
    CreateDebateInput,
    DebateService,
    UpdateDebateInput,
    parse_create,
    parse_update,
)

__all__ = [
    "CreateDebateInput",
    "DebateService",
    "UpdateDebateInput",
    "parse_create",
    "parse_update",
]
