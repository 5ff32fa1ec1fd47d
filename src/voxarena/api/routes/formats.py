"""Debate format catalogue for the VoxArena API."""

from fastapi import APIRouter

from voxarena.models.debate import (
    FORMAT_CONFIG_DEFAULTS,
    FORMAT_LABELS,
    DebateFormat,
    FormatOption,
    roles_for_format,
)

router = APIRouter(prefix="/v1", tags=["Formats"])


@router.get("/formats", response_model=list[FormatOption], response_model_by_alias=True)
def list_formats() -> list[FormatOption]:
    """Built-in formats with their default config and role options."""
    return [
        FormatOption(
            value=fmt.value,
            label=FORMAT_LABELS[fmt.value],
            config_defaults=dict(FORMAT_CONFIG_DEFAULTS[fmt.value]),
            roles=roles_for_format(fmt.value),
        )
        for fmt in DebateFormat
    ]
