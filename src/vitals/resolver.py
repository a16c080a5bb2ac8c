from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from vitals.config import VitalsSettings
from vitals.exceptions import RepoResolutionError
from vitals.runtime.env_policy import env_path


@dataclass(frozen=True)
class RepoCandidate:
    source: str
    path: Path | None
    require_git_dir: bool = False

    def matches(self) -> bool:
        if self.path is None:
            return False
        if self.require_git_dir:
            return (self.path / ".git").is_dir()
        return self.path.is_dir()

    def describe(self) -> str:
        if self.path is None:
            return f"{self.source}: (unset)"
        return f"{self.source}: {self.path}"


def candidate_chain(
    settings: VitalsSettings,
    *,
    explicit: Path | None = None,
    home: Path | None = None,
    env_lookup: Callable[[str], Path | None] = env_path,
) -> tuple[RepoCandidate, ...]:
    """Ordered candidates for the target repository; the first match wins."""
    home_dir = home if home is not None else Path.home()
    document_root = settings.document_root.resolve()
    return (
        RepoCandidate("argument", explicit),
        RepoCandidate(f"${settings.target_env}", env_lookup(settings.target_env)),
        RepoCandidate("home", home_dir / settings.target_name, require_git_dir=True),
        RepoCandidate(
            "sibling",
            document_root.parent / settings.target_name,
            require_git_dir=True,
        ),
    )


def resolve_repository(
    settings: VitalsSettings,
    *,
    explicit: Path | None = None,
    home: Path | None = None,
    env_lookup: Callable[[str], Path | None] = env_path,
) -> Path:
    chain = candidate_chain(
        settings, explicit=explicit, home=home, env_lookup=env_lookup
    )
    for candidate in chain:
        if candidate.matches() and candidate.path is not None:
            return candidate.path.resolve()
    tried = tuple(candidate.describe() for candidate in chain)
    raise RepoResolutionError(
        f"cannot find the {settings.target_name} repository; "
        f"set {settings.target_env}=/path/to/repo or pass --repo "
        f"(tried {'; '.join(tried)})",
        tried=tried,
    )
