from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
import subprocess
from typing import Callable, Mapping

from vitals.config import VitalsSettings
from vitals.exceptions import ProbeFailure
from vitals.json_types import JSONObject
from vitals.model import GIT, Period, Snapshot, ordered_sections
from vitals.probes import (
    DEFAULT_PROBES,
    Probe,
    ProbeContext,
    ProbeStatus,
    PullRequestLookup,
    lookup_merged_pull_requests,
)
from vitals.probes.base import RunCommand
from vitals.runtime.console import PrintErr, print_stderr

PullRequestSource = Callable[[ProbeContext], PullRequestLookup]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BuildDeps:
    run: RunCommand = subprocess.run
    print_err: PrintErr = print_stderr
    probes: Mapping[str, Probe] = field(default_factory=lambda: dict(DEFAULT_PROBES))
    pull_requests: PullRequestSource = lookup_merged_pull_requests
    now: Callable[[], datetime] = _utc_now


def build_snapshot(
    repo: Path,
    *,
    sections: frozenset[str],
    period: Period,
    settings: VitalsSettings,
    deps: BuildDeps | None = None,
) -> Snapshot:
    active_deps = deps or BuildDeps()
    context = ProbeContext(repo=repo, period=period, settings=settings, run=active_deps.run)
    collected_at = active_deps.now()
    produced: dict[str, JSONObject] = {}
    for name in ordered_sections(sections):
        probe = active_deps.probes.get(name)
        if probe is None:
            raise ProbeFailure(name, "no probe registered")
        result = probe(context)
        if result.status is ProbeStatus.FAILED:
            raise ProbeFailure(name, result.cause or "unknown failure")
        if result.status is ProbeStatus.EMPTY:
            active_deps.print_err(f"[metrics] {name}: nothing to report ({result.cause})")
        produced[name] = dict(result.metrics)

    pr_source_ok = False
    if GIT in sections:
        lookup = active_deps.pull_requests(context)
        pr_source_ok = lookup.ok
        if lookup.ok:
            produced[GIT].update(lookup.to_fields())
        else:
            active_deps.print_err(
                f"[metrics] pull-request lookup failed: {lookup.cause}; "
                "PR counts left at baseline"
            )
            produced[GIT].update(PullRequestLookup(ok=False).to_fields())

    return Snapshot(
        collected_at=collected_at,
        period=period,
        requested_sections=frozenset(sections),
        pr_source_ok=pr_source_ok,
        sections=produced,
    )
