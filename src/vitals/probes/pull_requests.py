"""Merged pull-request counts from the GitHub CLI.

The lookup is the least reliable source a run touches (tool missing, no auth,
network failures), so it never raises: any failure yields ``ok=False`` and
the caller leaves the pull-request counters at baseline.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, time, timezone
import json

from vitals.json_types import JSONObject
from vitals.model import Period
from vitals.probes.base import ProbeContext, run_capture


@dataclass(frozen=True)
class PullRequestLookup:
    ok: bool
    merged_count: int = 0
    merged_by_month: dict[str, int] = field(default_factory=dict)
    cause: str | None = None

    def to_fields(self) -> JSONObject:
        return {
            "pr_merged_count": self.merged_count,
            "pr_merged_by_month": dict(self.merged_by_month),
        }


def _parse_merged_at(raw: object) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _in_period(moment: datetime, period: Period) -> bool:
    start = datetime.combine(period.start, time(0, 0, 0), tzinfo=timezone.utc)
    end = datetime.combine(period.end, time(23, 59, 59), tzinfo=timezone.utc)
    return start <= moment <= end


def summarize_merged(records: list[object], period: Period) -> PullRequestLookup:
    months: Counter[str] = Counter()
    for record in records:
        if not isinstance(record, dict):
            continue
        merged_at = _parse_merged_at(record.get("mergedAt"))
        if merged_at is None or not _in_period(merged_at, period):
            continue
        months[merged_at.strftime("%Y-%m")] += 1
    return PullRequestLookup(
        ok=True,
        merged_count=sum(months.values()),
        merged_by_month={month: months[month] for month in sorted(months)},
    )


def lookup_merged_pull_requests(context: ProbeContext) -> PullRequestLookup:
    cmd = [
        "gh",
        "pr",
        "list",
        "--state",
        "merged",
        "--limit",
        str(context.settings.pr_limit),
        "--json",
        "mergedAt",
    ]
    try:
        proc = run_capture(context, cmd)
    except OSError as exc:
        return PullRequestLookup(ok=False, cause=f"gh unavailable: {exc}")
    if proc.returncode != 0:
        detail = (proc.stderr or "").strip().splitlines()
        return PullRequestLookup(
            ok=False,
            cause=f"gh pr list exited {proc.returncode}"
            + (f": {detail[0]}" if detail else ""),
        )
    try:
        payload = json.loads(proc.stdout or "")
    except json.JSONDecodeError as exc:
        return PullRequestLookup(ok=False, cause=f"gh pr list returned invalid JSON: {exc}")
    if not isinstance(payload, list):
        return PullRequestLookup(
            ok=False, cause=f"gh pr list returned {type(payload).__name__}, expected list"
        )
    return summarize_merged(payload, context.period)
