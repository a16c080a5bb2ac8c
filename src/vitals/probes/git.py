from __future__ import annotations

from collections import Counter

from vitals.json_types import JSONObject
from vitals.model import GIT, Period
from vitals.probes.base import ProbeContext, ProbeResult, run_capture

# Commit-message markers for assistant co-authored commits.
COAUTHOR_PATTERNS: tuple[str, ...] = (
    "Co-Authored-By:",
    "Co-authored-by:",
    "noreply@anthropic",
)


class _GitCommandFailed(Exception):
    pass


def period_bounds(period: Period) -> list[str]:
    return [
        f"--after={period.start.isoformat()}T00:00:00",
        f"--before={period.end.isoformat()}T23:59:59",
    ]


def _git_log(context: ProbeContext, args: list[str]) -> list[str]:
    cmd = ["git", "log", *period_bounds(context.period), *args]
    try:
        proc = run_capture(context, cmd)
    except OSError as exc:
        raise _GitCommandFailed(f"{' '.join(cmd[:2])}: {exc}") from exc
    if proc.returncode != 0:
        detail = (proc.stderr or "").strip().splitlines()
        raise _GitCommandFailed(
            f"{' '.join(cmd[:2])} exited {proc.returncode}"
            + (f": {detail[0]}" if detail else "")
        )
    return [line for line in (proc.stdout or "").splitlines() if line.strip()]


def _numstat_totals(lines: list[str]) -> tuple[int, int]:
    inserted = 0
    deleted = 0
    for line in lines:
        parts = line.split("\t")
        # Binary files report "-" for both counts.
        if len(parts) < 2 or not parts[0].isdigit() or not parts[1].isdigit():
            continue
        inserted += int(parts[0])
        deleted += int(parts[1])
    return inserted, deleted


def empty_git_metrics(period: Period) -> JSONObject:
    return {
        "total_commits": 0,
        "commits_by_month": {},
        "pr_merged_count": 0,
        "pr_merged_by_month": {},
        "lines_inserted": 0,
        "lines_deleted": 0,
        "net_lines": 0,
        "active_days": 0,
        "calendar_span": period.span_days,
        "assistant_coauthored": 0,
    }


def probe_git(context: ProbeContext) -> ProbeResult:
    """Commit activity for the period; pull-request fields stay at baseline."""
    try:
        commit_days = _git_log(context, ["--format=%ad", "--date=format:%Y-%m-%d"])
        grep_args = [f"--grep={pattern}" for pattern in COAUTHOR_PATTERNS]
        coauthored = _git_log(context, ["--format=%H", *grep_args])
        numstat = _git_log(context, ["--numstat", "--format="])
    except _GitCommandFailed as exc:
        return ProbeResult.failed(GIT, str(exc))

    metrics = empty_git_metrics(context.period)
    if not commit_days:
        return ProbeResult.empty(GIT, metrics, "no commits in period")
    by_month = Counter(day[:7] for day in commit_days)
    inserted, deleted = _numstat_totals(numstat)
    metrics.update(
        {
            "total_commits": len(commit_days),
            "commits_by_month": {month: by_month[month] for month in sorted(by_month)},
            "lines_inserted": inserted,
            "lines_deleted": deleted,
            "net_lines": inserted - deleted,
            "active_days": len(set(commit_days)),
            "assistant_coauthored": len(coauthored),
        }
    )
    return ProbeResult.ok(GIT, metrics)
