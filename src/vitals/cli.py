from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
import json
from pathlib import Path
from typing import Callable, Iterator, Mapping, Optional

import typer

from vitals.config import VitalsSettings, load_settings
from vitals.exceptions import VitalsError
from vitals.model import SECTION_NAMES, Snapshot, parse_sections
from vitals.pipeline import (
    FULL_MODE,
    UpdateDeps,
    UpdateOptions,
    UpdateResult,
    collect_snapshot,
    fold_snapshot,
    run_update,
    sections_for_mode,
)
from vitals.runtime.json_io import dump_json_pretty

app = typer.Typer(add_completion=False, help="Collect and publish project health metrics.")

_DATE_FORMATS = ["%Y-%m-%d"]


def _echo_err(message: str) -> None:
    typer.echo(message, err=True)


def _context_deps(ctx: typer.Context) -> UpdateDeps:
    obj = ctx.obj
    if isinstance(obj, Mapping):
        candidate = obj.get("deps")
        if isinstance(candidate, UpdateDeps):
            return candidate
    return UpdateDeps(echo=typer.echo, print_err=_echo_err)


def _context_run_update(ctx: typer.Context) -> Callable[..., UpdateResult]:
    obj = ctx.obj
    if isinstance(obj, Mapping):
        candidate = obj.get("run_update")
        if callable(candidate):
            return candidate
    return run_update


def _as_date(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


def _settings(root: Path, config: Path | None, document: Path | None) -> VitalsSettings:
    settings = load_settings(root=root, config_path=config)
    if document is not None:
        settings = replace(settings, document_path=document)
    return settings


@contextmanager
def _fatal_errors() -> Iterator[None]:
    try:
        yield
    except VitalsError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=exc.exit_code) from exc


@app.command("update")
def update(
    ctx: typer.Context,
    mode: str = typer.Option(
        FULL_MODE,
        "--mode",
        help="full: all sections; restricted: git and app only (for CI).",
    ),
    repo: Optional[Path] = typer.Option(None, "--repo", help="Target repository path."),
    since: Optional[datetime] = typer.Option(None, "--since", formats=_DATE_FORMATS),
    until: Optional[datetime] = typer.Option(None, "--until", formats=_DATE_FORMATS),
    root: Path = typer.Option(Path("."), "--root", help="Metrics document repository."),
    config: Optional[Path] = typer.Option(None, "--config"),
    document: Optional[Path] = typer.Option(None, "--document"),
    publish: bool = typer.Option(True, "--publish/--no-publish"),
) -> None:
    """Collect fresh metrics, merge them into the document and publish it."""
    try:
        sections = sections_for_mode(mode)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--mode") from exc
    options = UpdateOptions(
        sections=sections,
        repo=repo,
        since=_as_date(since),
        until=_as_date(until),
        publish=publish,
    )
    run_update_fn = _context_run_update(ctx)
    with _fatal_errors():
        result = run_update_fn(
            options,
            settings=_settings(root, config, document),
            deps=_context_deps(ctx),
        )
    if result.publish is not None and not result.publish.changed:
        typer.echo("[metrics] Nothing changed")


@app.command("collect")
def collect(
    ctx: typer.Context,
    sections: str = typer.Option(
        ",".join(SECTION_NAMES),
        "--sections",
        help="Comma-separated sections to collect.",
    ),
    repo: Optional[Path] = typer.Option(None, "--repo"),
    since: Optional[datetime] = typer.Option(None, "--since", formats=_DATE_FORMATS),
    until: Optional[datetime] = typer.Option(None, "--until", formats=_DATE_FORMATS),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Print a fresh snapshot as JSON without touching the document."""
    try:
        requested = parse_sections(sections)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--sections") from exc
    options = UpdateOptions(
        sections=requested,
        repo=repo,
        since=_as_date(since),
        until=_as_date(until),
        publish=False,
    )
    with _fatal_errors():
        _repo, snapshot = collect_snapshot(
            options,
            settings=_settings(root, config, None),
            deps=_context_deps(ctx),
        )
    typer.echo(dump_json_pretty(snapshot.to_payload()), nl=False)


@app.command("merge")
def merge(
    ctx: typer.Context,
    fresh: Path = typer.Option(..., "--fresh", help="Snapshot JSON from `vitals collect`."),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    document: Optional[Path] = typer.Option(None, "--document"),
) -> None:
    """Fold a previously collected snapshot into the document (no publish)."""
    try:
        payload = json.loads(fresh.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("snapshot must be a JSON object")
        snapshot = Snapshot.from_payload(payload)
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--fresh") from exc
    settings = _settings(root, config, document)
    deps = _context_deps(ctx)
    with _fatal_errors():
        fold_snapshot(
            snapshot,
            document_path=settings.document_path,
            print_err=deps.print_err,
        )
    deps.echo(f"[metrics] {settings.document_path.name} updated successfully")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
