"""Print a fresh metrics snapshot as JSON on stdout.

Usage: python scripts/collect_metrics.py [--sections=git,app,...] [REPO] [START] [END]
"""

from __future__ import annotations

import argparse
from datetime import date
import sys
from pathlib import Path

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from vitals.config import load_settings
from vitals.exceptions import VitalsError
from vitals.model import SECTION_NAMES, parse_sections
from vitals.pipeline import UpdateDeps, UpdateOptions, collect_snapshot
from vitals.runtime.json_io import dump_json_pretty

_DEPLOY_DIR = Path(__file__).resolve().parents[1]


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Collect project metrics as JSON.")
    parser.add_argument(
        "--sections",
        default=",".join(SECTION_NAMES),
        help="Comma-separated sections (default: all).",
    )
    parser.add_argument("--root", default=str(_DEPLOY_DIR))
    parser.add_argument("repo", nargs="?")
    parser.add_argument("start", nargs="?", type=date.fromisoformat)
    parser.add_argument("end", nargs="?", type=date.fromisoformat)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None, deps: UpdateDeps | None = None) -> int:
    args = _parse_args(argv)
    active_deps = deps or UpdateDeps()
    try:
        sections = parse_sections(args.sections)
    except ValueError as exc:
        active_deps.print_err(f"ERROR: {exc}")
        return 2
    options = UpdateOptions(
        sections=sections,
        repo=Path(args.repo) if args.repo else None,
        since=args.start,
        until=args.end,
        publish=False,
    )
    try:
        _repo, snapshot = collect_snapshot(
            options,
            settings=load_settings(root=Path(args.root)),
            deps=active_deps,
        )
    except VitalsError as exc:
        active_deps.print_err(f"ERROR: {exc}")
        return exc.exit_code
    active_deps.echo(dump_json_pretty(snapshot.to_payload()).rstrip("\n"))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
