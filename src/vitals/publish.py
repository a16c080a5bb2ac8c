"""Commit and push the written document to the shared remote.

Several triggers may publish at once, so a rejected push is expected: the
coordinator resynchronizes and retries exactly once, then gives up with
``PublishConflictError`` rather than looping. The document is committed
before any resync, so a rebase can only ever stop on a conflict, never
splice conflict markers into an uncommitted file. A failed resync is aborted
and the local commit dropped, leaving the checkout at the remote state for
the next run.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import subprocess
from typing import Callable

from vitals.config import VitalsSettings
from vitals.exceptions import DocumentValidationError, PublishConflictError, PublishError
from vitals.probes.base import RunCommand
from vitals.runtime.console import Echo, PrintErr, print_stderr
from vitals.writer import validate_document_text


@dataclass(frozen=True)
class PublishDeps:
    run: RunCommand = subprocess.run
    echo: Echo = print
    print_err: PrintErr = print_stderr
    now: Callable[[], datetime] = datetime.now


@dataclass(frozen=True)
class PublishOutcome:
    changed: bool
    retried: bool = False
    commit_message: str | None = None


def _git(
    deps: PublishDeps, root: Path, args: list[str]
) -> subprocess.CompletedProcess[str]:
    cmd = ["git", *args]
    try:
        return deps.run(cmd, check=False, capture_output=True, text=True, cwd=str(root))
    except OSError as exc:
        raise PublishError(f"{' '.join(cmd[:2])} could not run: {exc}") from exc


def _first_line(proc: subprocess.CompletedProcess[str]) -> str:
    lines = (proc.stderr or proc.stdout or "").strip().splitlines()
    return lines[0] if lines else f"exit {proc.returncode}"


def sync_remote(
    root: Path, *, settings: VitalsSettings, deps: PublishDeps, autostash: bool = True
) -> bool:
    """Best-effort ``git pull --rebase``; a failed pull is aborted, never left half-done."""
    args = ["pull", "--rebase", "-q"]
    if autostash:
        args.append("--autostash")
    proc = _git(deps, root, [*args, settings.remote, settings.branch])
    if proc.returncode == 0:
        return True
    deps.print_err(
        f"[metrics] sync with {settings.remote}/{settings.branch} failed "
        f"({_first_line(proc)}); continuing"
    )
    # Fails harmlessly when the pull stopped before rebasing.
    _git(deps, root, ["rebase", "--abort"])
    return False


def commit_message(moment: datetime) -> str:
    return f"chore: update metrics {moment:%Y-%m-%d %H:%M}"


def _push(deps: PublishDeps, root: Path, settings: VitalsSettings) -> subprocess.CompletedProcess[str]:
    return _git(deps, root, ["push", settings.remote, settings.branch])


def _check_document(path: Path) -> None:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeError) as exc:
        raise DocumentValidationError(f"cannot read {path} for publishing: {exc}") from exc
    validate_document_text(text)


def _drop_local_commit(deps: PublishDeps, root: Path, settings: VitalsSettings) -> None:
    upstream = f"{settings.remote}/{settings.branch}"
    reset = _git(deps, root, ["reset", "-q", "--keep", upstream])
    if reset.returncode != 0:
        deps.print_err(
            f"[metrics] could not reset to {upstream} ({_first_line(reset)}); "
            "the next run may need a manual reset"
        )


def publish_document(
    path: Path,
    *,
    settings: VitalsSettings,
    deps: PublishDeps | None = None,
) -> PublishOutcome:
    """Stage, commit and push ``path``.

    The caller syncs with the remote before writing the document; publishing
    itself only pulls again after a rejected push.
    """
    active_deps = deps or PublishDeps()
    root = path.resolve().parent
    name = path.name

    _check_document(path)

    staged = _git(active_deps, root, ["add", "--", name])
    if staged.returncode != 0:
        raise PublishError(f"git add {name} failed: {_first_line(staged)}")

    diff = _git(active_deps, root, ["diff", "--cached", "--quiet", "--", name])
    if diff.returncode == 0:
        active_deps.echo("[metrics] No changes detected, skipping commit")
        return PublishOutcome(changed=False)
    if diff.returncode != 1:
        raise PublishError(f"git diff --cached failed: {_first_line(diff)}")

    message = commit_message(active_deps.now())
    committed = _git(active_deps, root, ["commit", "-q", "-m", message, "--", name])
    if committed.returncode != 0:
        raise PublishError(f"git commit failed: {_first_line(committed)}")

    pushed = _push(active_deps, root, settings)
    retried = False
    if pushed.returncode != 0:
        retried = True
        active_deps.print_err(
            f"[metrics] Push failed ({_first_line(pushed)}), retrying after pull..."
        )
        if not sync_remote(root, settings=settings, deps=active_deps, autostash=False):
            _drop_local_commit(active_deps, root, settings)
            raise PublishConflictError(
                f"could not rebase onto {settings.remote}/{settings.branch} after rejected push"
            )
        try:
            _check_document(path)
        except DocumentValidationError:
            _drop_local_commit(active_deps, root, settings)
            raise
        pushed = _push(active_deps, root, settings)
        if pushed.returncode != 0:
            _drop_local_commit(active_deps, root, settings)
            raise PublishConflictError(
                f"push to {settings.remote}/{settings.branch} rejected after retry: "
                f"{_first_line(pushed)}"
            )
    active_deps.echo(f"[metrics] Pushed to {settings.remote}/{settings.branch}")
    return PublishOutcome(changed=True, retried=retried, commit_message=message)
