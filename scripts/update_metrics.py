"""Refresh metrics.json from the target repository and publish it.

Usage: python scripts/update_metrics.py [--local|--ci] [--no-publish] [REPO]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from vitals.config import load_settings
from vitals.exceptions import VitalsError
from vitals.pipeline import (
    FULL_MODE,
    RESTRICTED_MODE,
    UpdateDeps,
    UpdateOptions,
    run_update,
    sections_for_mode,
)

_DEPLOY_DIR = Path(__file__).resolve().parents[1]


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Collect metrics and publish metrics.json.")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--local",
        dest="mode",
        action="store_const",
        const=FULL_MODE,
        help="Collect every section (default).",
    )
    mode.add_argument(
        "--ci",
        dest="mode",
        action="store_const",
        const=RESTRICTED_MODE,
        help="Collect git and app only; CI has no local session data.",
    )
    parser.set_defaults(mode=FULL_MODE)
    parser.add_argument(
        "--root",
        default=str(_DEPLOY_DIR),
        help="Repository holding metrics.json (default: this checkout).",
    )
    parser.add_argument(
        "--publish",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Commit and push the updated document (default: true).",
    )
    parser.add_argument("repo", nargs="?", help="Target repository path.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None, deps: UpdateDeps | None = None) -> int:
    args = _parse_args(argv)
    options = UpdateOptions(
        sections=sections_for_mode(args.mode),
        repo=Path(args.repo) if args.repo else None,
        publish=bool(args.publish),
    )
    active_deps = deps or UpdateDeps()
    try:
        run_update(options, settings=load_settings(root=Path(args.root)), deps=active_deps)
    except VitalsError as exc:
        active_deps.print_err(f"ERROR: {exc}")
        return exc.exit_code
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
