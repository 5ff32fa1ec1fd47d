"""VoxArena CLI - deterministic command-line checks, migrations, and seeding.

Usage:
    python -m voxarena validate-roster --format <format> [--input PATH]
    python -m voxarena check-transition <FROM> <TO>
    python -m voxarena db upgrade [--revision REV]
    python -m voxarena db downgrade [--revision REV]
    python -m voxarena db seed

Exit codes:
    0: Check passed / command succeeded
    1: Internal error
    2: Check failed or invalid input
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from voxarena.debate.composition import validate_composition
from voxarena.debate.errors import MalformedInputError
from voxarena.debate.lifecycle import TRANSITIONS, can_transition
from voxarena.debate.participants import normalize_participants


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _make_error_result(code: str, message: str) -> dict[str, Any]:
    """Failed roster result with a single error."""
    return {
        "errors": [{"code": code, "message": message, "path": "$"}],
        "participants": [],
        "pass": False,
    }


def _load_json_input(input_path: str | None) -> tuple[Any, str | None]:
    """Load JSON from file or stdin.

    Returns:
        Tuple of (parsed_data, error_message). If error_message is not None,
        parsed_data should be ignored.
    """
    try:
        if input_path:
            with open(input_path, encoding="utf-8") as f:
                content = f.read()
        else:
            content = sys.stdin.read()

        if not content.strip():
            return None, "Empty input"

        return json.loads(content), None
    except FileNotFoundError:
        return None, f"File not found: {input_path}"
    except json.JSONDecodeError as e:
        return None, f"Invalid JSON: {e}"
    except OSError as e:
        return None, f"Cannot read input: {e}"


def cmd_validate_roster(args: argparse.Namespace) -> int:
    """Normalize a participant array and check it against a format.

    Exit codes:
        0: pass=True
        2: pass=False (composition violation or invalid input)
    """
    data, error_msg = _load_json_input(args.input)
    if error_msg is not None:
        _output_json(_make_error_result("INVALID_JSON", error_msg))
        return 2
    if not isinstance(data, list):
        _output_json(_make_error_result("INVALID_INPUT", "Input must be a JSON array"))
        return 2

    try:
        participants = normalize_participants(data)
    except MalformedInputError as e:
        _output_json(_make_error_result("INVALID_ROLE", e.message))
        return 2

    violation = validate_composition(args.format, participants)
    errors = []
    if violation:
        errors.append({"code": "COMPOSITION_VIOLATION", "message": violation, "path": "$"})

    _output_json(
        {
            "errors": errors,
            "participants": [p.to_payload() for p in participants],
            "pass": violation is None,
        }
    )
    return 0 if violation is None else 2


def cmd_check_transition(args: argparse.Namespace) -> int:
    """Check a status transition against the lifecycle table.

    Exit codes:
        0: allowed
        2: not allowed (or unknown status)
    """
    from_status = args.from_status.strip().upper()
    to_status = args.to_status.strip().upper()

    if from_status not in TRANSITIONS or to_status not in TRANSITIONS:
        _output_json({"allowed": False, "message": f"Unknown status: {from_status} or {to_status}"})
        return 2

    allowed = can_transition(from_status, to_status)
    message = None if allowed else f"Illegal status transition: {from_status} → {to_status}"
    _output_json({"allowed": allowed, "message": message})
    return 0 if allowed else 2


def cmd_db(args: argparse.Namespace) -> int:
    """Run alembic upgrade/downgrade against the admin database URL."""
    from voxarena.persistence.migrate import run_downgrade, run_upgrade

    if args.db_command == "upgrade":
        revision = args.revision or "head"
        run_upgrade(revision=revision)
    else:
        revision = args.revision or "base"
        run_downgrade(revision=revision)

    _output_json({"command": args.db_command, "revision": revision, "status": "ok"})
    return 0


def cmd_db_seed(args: argparse.Namespace) -> int:
    """Upsert the bundled taxonomy catalogue into the app database."""
    from voxarena.persistence.db import begin_app_conn
    from voxarena.persistence.seed import seed_taxonomy

    with begin_app_conn() as conn:
        summary = seed_taxonomy(conn)

    _output_json({"command": "seed", "status": "ok", **summary})
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="voxarena",
        description="VoxArena - debate roster checks and database migrations",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    roster_parser = subparsers.add_parser(
        "validate-roster",
        help="Normalize a participant JSON array and check its composition",
    )
    roster_parser.add_argument(
        "--format",
        required=True,
        help="Debate format (structured, podcast)",
    )
    roster_parser.add_argument(
        "--input",
        required=False,
        default=None,
        metavar="PATH",
        help="Path to JSON file (reads from stdin if omitted)",
    )

    transition_parser = subparsers.add_parser(
        "check-transition",
        help="Check whether a debate status transition is allowed",
    )
    transition_parser.add_argument("from_status", metavar="FROM")
    transition_parser.add_argument("to_status", metavar="TO")

    db_parser = subparsers.add_parser("db", help="Database schema migrations")
    db_subparsers = db_parser.add_subparsers(dest="db_command", help="Migration subcommands")
    for name, help_text in [
        ("upgrade", "Upgrade the schema (default target: head)"),
        ("downgrade", "Downgrade the schema (default target: base)"),
    ]:
        sub = db_subparsers.add_parser(name, help=help_text)
        sub.add_argument("--revision", metavar="REV", default=None, help="Target revision")
    db_subparsers.add_parser("seed", help="Upsert the bundled taxonomy terms (idempotent)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success / check passed
        1: Internal error (unexpected)
        2: Check failed / invalid input
    """
    try:
        parser = create_parser()
        args = parser.parse_args(argv)

        if args.command is None:
            parser.print_help()
            return 0

        if args.command == "validate-roster":
            return cmd_validate_roster(args)

        if args.command == "check-transition":
            return cmd_check_transition(args)

        if args.command == "db":
            if getattr(args, "db_command", None) in ("upgrade", "downgrade"):
                return cmd_db(args)
            if getattr(args, "db_command", None) == "seed":
                return cmd_db_seed(args)
            parser.parse_args(["db", "--help"])
            return 0

        return 0

    except Exception as e:
        _output_json(
            {"errors": [{"code": "INTERNAL_ERROR", "message": str(e), "path": "$"}], "pass": False}
        )
        return 1
