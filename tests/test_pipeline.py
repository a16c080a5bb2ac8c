from __future__ import annotations

from datetime import date, datetime, timezone
import json
from pathlib import Path
import subprocess

import pytest

from vitals.config import VitalsSettings
from vitals.exceptions import (
    DocumentValidationError,
    InvalidPeriodError,
    ProbeFailure,
    RepoResolutionError,
)
from vitals.model import APP, ASSISTANT_ACTIVITY, GIT, INFRASTRUCTURE, SECTION_NAMES
from vitals.pipeline import (
    FULL_MODE,
    RESTRICTED_MODE,
    UpdateDeps,
    UpdateOptions,
    resolve_period,
    run_update,
    sections_for_mode,
)
from vitals.probes import ProbeContext, ProbeResult, PullRequestLookup
from tests.fake_commands import FakeRunner, completed

_PREVIOUS = {
    "collected_at": "2026-03-30T06:00:00Z",
    "period": {"start": "2026-02-01", "end": "2026-03-30"},
    GIT: {"total_commits": 9, "pr_merged_count": 4, "pr_merged_by_month": {"2026-03": 4}},
    ASSISTANT_ACTIVITY: {"sessions": 6},
    INFRASTRUCTURE: {"agents": 3},
    APP: {"python_loc": 700},
}


def _probes(fail: str | None = None) -> dict[str, object]:
    fresh = {
        GIT: {"total_commits": 11, "pr_merged_count": 0, "pr_merged_by_month": {}},
        ASSISTANT_ACTIVITY: {"sessions": 7},
        INFRASTRUCTURE: {"agents": 4},
        APP: {"python_loc": 900},
    }

    def make(name: str):
        def probe(context: ProbeContext) -> ProbeResult:
            if name == fail:
                return ProbeResult.failed(name, "boom")
            return ProbeResult.ok(name, dict(fresh[name]))

        return probe

    return {name: make(name) for name in SECTION_NAMES}


def _git_runner(diff_code: int = 1) -> FakeRunner:
    def handler(cmd: list[str]) -> subprocess.CompletedProcess[str]:
        if cmd[:2] == ["git", "diff"]:
            return completed(cmd, returncode=diff_code)
        return completed(cmd)

    return FakeRunner(handler)


def _deps(
    tmp_path: Path,
    *,
    runner: FakeRunner | None = None,
    pr_ok: bool = False,
    fail: str | None = None,
    echoed: list[str] | None = None,
    errors: list[str] | None = None,
) -> UpdateDeps:
    lookup = (
        PullRequestLookup(ok=True, merged_count=5, merged_by_month={"2026-03": 5})
        if pr_ok
        else PullRequestLookup(ok=False, cause="gh unavailable")
    )
    return UpdateDeps(
        run=runner or _git_runner(),
        echo=(echoed if echoed is not None else []).append,
        print_err=(errors if errors is not None else []).append,
        now=lambda: datetime(2026, 3, 31, 6, 0, tzinfo=timezone.utc),
        local_now=lambda: datetime(2026, 3, 31, 8, 0),
        home=tmp_path / "home",
        env_lookup=lambda name: None,
        probes=_probes(fail),
        pull_requests=lambda context: lookup,
    )


@pytest.fixture
def target(tmp_path: Path) -> Path:
    path = tmp_path / "target"
    path.mkdir()
    return path


def _seed(settings: VitalsSettings) -> None:
    settings.document_path.write_text(json.dumps(_PREVIOUS), encoding="utf-8")


def _published(settings: VitalsSettings) -> dict[str, object]:
    return json.loads(settings.document_path.read_text(encoding="utf-8"))


def test_sections_for_mode() -> None:
    assert sections_for_mode(FULL_MODE) == frozenset(SECTION_NAMES)
    assert sections_for_mode(RESTRICTED_MODE) == frozenset({GIT, APP})
    with pytest.raises(ValueError):
        sections_for_mode("partial")


def test_resolve_period_defaults_and_overrides(settings: VitalsSettings) -> None:
    today = date(2026, 3, 31)

    default = resolve_period(settings, since=None, until=None, today=today)
    custom = resolve_period(
        settings, since=date(2026, 3, 1), until=date(2026, 3, 15), today=today
    )

    assert (default.start, default.end) == (date(2026, 2, 1), today)
    assert (custom.start, custom.end) == (date(2026, 3, 1), date(2026, 3, 15))
    with pytest.raises(InvalidPeriodError):
        resolve_period(settings, since=date(2026, 4, 1), until=None, today=today)


def test_restricted_update_preserves_local_only_sections(
    tmp_path: Path, target: Path, settings: VitalsSettings
) -> None:
    _seed(settings)
    errors: list[str] = []
    runner = _git_runner()

    result = run_update(
        UpdateOptions(sections=sections_for_mode(RESTRICTED_MODE), repo=target, publish=False),
        settings=settings,
        deps=_deps(tmp_path, runner=runner, errors=errors),
    )

    document = _published(settings)
    assert document[GIT]["total_commits"] == 11
    assert document[GIT]["pr_merged_count"] == 4
    assert document[APP] == {"python_loc": 900}
    assert document[ASSISTANT_ACTIVITY] == {"sessions": 6}
    assert document[INFRASTRUCTURE] == {"agents": 3}
    assert "requested_sections" not in document
    assert "pr_source_ok" not in document
    assert document["period"] == {"start": "2026-02-01", "end": "2026-03-31"}
    assert result.repo == target.resolve()
    assert result.publish is None
    assert runner.calls == []
    assert "[metrics] Preserved infrastructure from previous run (not requested)" in errors


def test_full_update_with_healthy_pr_source(
    tmp_path: Path, target: Path, settings: VitalsSettings
) -> None:
    _seed(settings)

    run_update(
        UpdateOptions(sections=frozenset(SECTION_NAMES), repo=target, publish=False),
        settings=settings,
        deps=_deps(tmp_path, pr_ok=True),
    )

    document = _published(settings)
    assert document[GIT]["pr_merged_count"] == 5
    assert document[ASSISTANT_ACTIVITY] == {"sessions": 7}
    assert document[INFRASTRUCTURE] == {"agents": 4}


def test_update_publishes_after_writing(
    tmp_path: Path, target: Path, settings: VitalsSettings
) -> None:
    runner = _git_runner(diff_code=1)
    echoed: list[str] = []

    result = run_update(
        UpdateOptions(sections=frozenset({APP}), repo=target),
        settings=settings,
        deps=_deps(tmp_path, runner=runner, echoed=echoed),
    )

    assert runner.subcommands() == ["pull", "add", "diff", "commit", "push"]
    assert result.publish is not None and result.publish.changed is True
    assert result.publish.commit_message == "chore: update metrics 2026-03-31 08:00"
    assert echoed[0] == "[metrics] metrics.json updated successfully"
    assert _published(settings) == {
        "collected_at": "2026-03-31T06:00:00Z",
        "period": {"start": "2026-02-01", "end": "2026-03-31"},
        APP: {"python_loc": 900},
    }


def test_unresolvable_repository_writes_nothing(
    tmp_path: Path, settings: VitalsSettings
) -> None:
    runner = _git_runner()

    with pytest.raises(RepoResolutionError):
        run_update(
            UpdateOptions(sections=frozenset(SECTION_NAMES)),
            settings=settings,
            deps=_deps(tmp_path, runner=runner),
        )

    assert not settings.document_path.exists()
    assert runner.calls == []


def test_failed_probe_leaves_document_untouched(
    tmp_path: Path, target: Path, settings: VitalsSettings
) -> None:
    _seed(settings)
    before = settings.document_path.read_bytes()

    with pytest.raises(ProbeFailure):
        run_update(
            UpdateOptions(sections=frozenset(SECTION_NAMES), repo=target),
            settings=settings,
            deps=_deps(tmp_path, fail=INFRASTRUCTURE),
        )

    assert settings.document_path.read_bytes() == before


def test_unreadable_previous_document_stops_the_run(
    tmp_path: Path, target: Path, settings: VitalsSettings
) -> None:
    settings.document_path.write_text("{not json", encoding="utf-8")
    before = settings.document_path.read_bytes()
    runner = _git_runner()

    with pytest.raises(DocumentValidationError) as excinfo:
        run_update(
            UpdateOptions(sections=frozenset({APP}), repo=target),
            settings=settings,
            deps=_deps(tmp_path, runner=runner),
        )

    assert excinfo.value.exit_code == 5
    assert settings.document_path.read_bytes() == before
    assert "commit" not in runner.subcommands()
