from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import os
from pathlib import Path
import subprocess
from typing import Callable, Iterator

from vitals.config import VitalsSettings
from vitals.json_types import JSONObject
from vitals.model import Period

RunCommand = Callable[..., subprocess.CompletedProcess[str]]

# Directories never counted as project content.
EXCLUDED_DIRS = frozenset({".git", "venv", ".venv", "node_modules", "__pycache__"})


class ProbeStatus(StrEnum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class ProbeResult:
    section: str
    status: ProbeStatus
    metrics: JSONObject = field(default_factory=dict)
    cause: str | None = None

    @classmethod
    def ok(cls, section: str, metrics: JSONObject) -> "ProbeResult":
        return cls(section=section, status=ProbeStatus.OK, metrics=metrics)

    @classmethod
    def empty(cls, section: str, metrics: JSONObject, cause: str) -> "ProbeResult":
        return cls(section=section, status=ProbeStatus.EMPTY, metrics=metrics, cause=cause)

    @classmethod
    def failed(cls, section: str, cause: str) -> "ProbeResult":
        return cls(section=section, status=ProbeStatus.FAILED, cause=cause)


@dataclass(frozen=True)
class ProbeContext:
    repo: Path
    period: Period
    settings: VitalsSettings
    run: RunCommand = subprocess.run


Probe = Callable[[ProbeContext], ProbeResult]


def run_capture(
    context: ProbeContext, cmd: list[str]
) -> subprocess.CompletedProcess[str]:
    return context.run(
        cmd,
        check=False,
        capture_output=True,
        text=True,
        cwd=str(context.repo),
    )


def walk_files(root: Path) -> Iterator[Path]:
    """Yield regular files under ``root`` without following symlinks."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in EXCLUDED_DIRS)
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_symlink() or not path.is_file():
                continue
            yield path


def count_lines(path: Path) -> int:
    try:
        with path.open("rb") as handle:
            return sum(chunk.count(b"\n") for chunk in iter(lambda: handle.read(65536), b""))
    except OSError:
        return 0
