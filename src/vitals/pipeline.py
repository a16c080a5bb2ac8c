from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
import subprocess
from typing import Callable, Mapping

from vitals.builder import BuildDeps, PullRequestSource, build_snapshot
from vitals.config import VitalsSettings
from vitals.exceptions import DocumentValidationError, InvalidPeriodError
from vitals.merge import MergeOutcome, merge_with_notes
from vitals.model import (
    APP,
    GIT,
    SECTION_NAMES,
    MetricsDocument,
    Period,
    Snapshot,
    ordered_sections,
)
from vitals.probes import DEFAULT_PROBES, Probe, lookup_merged_pull_requests
from vitals.probes.base import RunCommand
from vitals.publish import PublishDeps, PublishOutcome, publish_document, sync_remote
from vitals.resolver import resolve_repository
from vitals.runtime.console import Echo, PrintErr, print_stderr
from vitals.runtime.env_policy import env_path
from vitals.writer import load_document, write_document

FULL_MODE = "full"
RESTRICTED_MODE = "restricted"

# Restricted runs (CI) cannot see local assistant sessions or symlinked config.
SECTION_MODES: dict[str, frozenset[str]] = {
    FULL_MODE: frozenset(SECTION_NAMES),
    RESTRICTED_MODE: frozenset({GIT, APP}),
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def sections_for_mode(mode: str) -> frozenset[str]:
    try:
        return SECTION_MODES[mode]
    except KeyError:
        raise ValueError(
            f"unknown mode {mode!r}; expected one of {', '.join(SECTION_MODES)}"
        ) from None


@dataclass(frozen=True)
class UpdateDeps:
    run: RunCommand = subprocess.run
    echo: Echo = print
    print_err: PrintErr = print_stderr
    now: Callable[[], datetime] = _utc_now
    local_now: Callable[[], datetime] = datetime.now
    home: Path | None = None
    env_lookup: Callable[[str], Path | None] = env_path
    probes: Mapping[str, Probe] = field(default_factory=lambda: dict(DEFAULT_PROBES))
    pull_requests: PullRequestSource = lookup_merged_pull_requests

    def build_deps(self) -> BuildDeps:
        return BuildDeps(
            run=self.run,
            print_err=self.print_err,
            probes=self.probes,
            pull_requests=self.pull_requests,
            now=self.now,
        )

    def publish_deps(self) -> PublishDeps:
        return PublishDeps(
            run=self.run,
            echo=self.echo,
            print_err=self.print_err,
            now=self.local_now,
        )


@dataclass(frozen=True)
class UpdateOptions:
    sections: frozenset[str]
    repo: Path | None = None
    since: date | None = None
    until: date | None = None
    publish: bool = True


@dataclass(frozen=True)
class UpdateResult:
    repo: Path
    document_path: Path
    snapshot: Snapshot
    notes: tuple[str, ...]
    publish: PublishOutcome | None


def resolve_period(
    settings: VitalsSettings,
    *,
    since: date | None,
    until: date | None,
    today: date,
) -> Period:
    start = since if since is not None else settings.period_start
    end = until if until is not None else today
    try:
        return Period(start=start, end=end)
    except ValueError as exc:
        raise InvalidPeriodError(str(exc)) from exc


def load_previous(path: Path) -> MetricsDocument | None:
    """Previous document, or ``None`` on a first run.

    An existing file that does not parse is fatal: merging into it as a first
    run would drop every section this run did not request.
    """
    previous = load_document(path)
    if previous is None and path.exists():
        raise DocumentValidationError(
            f"{path} exists but is not a readable JSON object; "
            "restore it from version control before updating"
        )
    return previous


def fold_snapshot(
    snapshot: Snapshot,
    *,
    document_path: Path,
    print_err: PrintErr,
) -> MergeOutcome:
    """Merge ``snapshot`` into the document at ``document_path`` and write it."""
    previous = load_previous(document_path)
    outcome = merge_with_notes(previous, snapshot)
    for note in outcome.notes:
        print_err(f"[metrics] {note}")
    write_document(outcome.document, document_path)
    return outcome


def collect_snapshot(
    options: UpdateOptions,
    *,
    settings: VitalsSettings,
    deps: UpdateDeps,
) -> tuple[Path, Snapshot]:
    repo = resolve_repository(
        settings,
        explicit=options.repo,
        home=deps.home,
        env_lookup=deps.env_lookup,
    )
    period = resolve_period(
        settings,
        since=options.since,
        until=options.until,
        today=deps.now().date(),
    )
    deps.print_err(
        f"[metrics] Collecting from: {repo} "
        f"(sections: {','.join(ordered_sections(options.sections))}, "
        f"period: {period.start}..{period.end})"
    )
    snapshot = build_snapshot(
        repo,
        sections=options.sections,
        period=period,
        settings=settings,
        deps=deps.build_deps(),
    )
    return repo, snapshot


def run_update(
    options: UpdateOptions,
    *,
    settings: VitalsSettings,
    deps: UpdateDeps | None = None,
) -> UpdateResult:
    active_deps = deps or UpdateDeps()
    document_path = settings.document_path
    repo, snapshot = collect_snapshot(options, settings=settings, deps=active_deps)

    publish_deps = active_deps.publish_deps()
    if options.publish:
        # Read the freshest published state before merging into it.
        sync_remote(document_path.resolve().parent, settings=settings, deps=publish_deps)

    outcome = fold_snapshot(
        snapshot,
        document_path=document_path,
        print_err=active_deps.print_err,
    )
    active_deps.echo(f"[metrics] {document_path.name} updated successfully")

    published: PublishOutcome | None = None
    if options.publish:
        published = publish_document(document_path, settings=settings, deps=publish_deps)
    return UpdateResult(
        repo=repo,
        document_path=document_path,
        snapshot=snapshot,
        notes=outcome.notes,
        publish=published,
    )
