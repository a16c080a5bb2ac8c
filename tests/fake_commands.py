from __future__ import annotations

import subprocess
from typing import Callable

Handler = Callable[[list[str]], subprocess.CompletedProcess[str]]


def completed(
    cmd: list[str], returncode: int = 0, stdout: str = "", stderr: str = ""
) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)


class FakeRunner:
    """Stands in for ``subprocess.run``; records every command it receives."""

    def __init__(self, handler: Handler):
        self.handler = handler
        self.calls: list[list[str]] = []
        self.cwds: list[str | None] = []

    def __call__(
        self,
        cmd: list[str],
        *,
        check: bool = False,
        capture_output: bool = False,
        text: bool = False,
        cwd: str | None = None,
    ) -> subprocess.CompletedProcess[str]:
        self.calls.append(list(cmd))
        self.cwds.append(cwd)
        return self.handler(list(cmd))

    def subcommands(self) -> list[str]:
        return [call[1] for call in self.calls if len(call) > 1]
