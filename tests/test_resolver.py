from __future__ import annotations

from pathlib import Path

import pytest

from vitals.config import VitalsSettings
from vitals.exceptions import RepoResolutionError
from vitals.resolver import candidate_chain, resolve_repository


def _git_repo(path: Path) -> Path:
    (path / ".git").mkdir(parents=True)
    return path


def _no_env(name: str) -> Path | None:
    return None


def _settings(tmp_path: Path) -> VitalsSettings:
    deploy = tmp_path / "work" / "deploy"
    deploy.mkdir(parents=True)
    return VitalsSettings(target_name="target", document_path=deploy / "metrics.json")


def test_explicit_path_wins(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    explicit = tmp_path / "explicit"
    explicit.mkdir()
    _git_repo(tmp_path / "home" / "target")

    resolved = resolve_repository(
        settings, explicit=explicit, home=tmp_path / "home", env_lookup=_no_env
    )

    assert resolved == explicit.resolve()


def test_environment_variable_precedes_conventional_locations(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    from_env = tmp_path / "from-env"
    from_env.mkdir()
    _git_repo(tmp_path / "home" / "target")

    resolved = resolve_repository(
        settings,
        home=tmp_path / "home",
        env_lookup=lambda name: from_env if name == "VITALS_REPO" else None,
    )

    assert resolved == from_env.resolve()


def test_environment_variable_is_read_from_process_env(tmp_path: Path, env_scope) -> None:
    settings = _settings(tmp_path)
    from_env = tmp_path / "from-env"
    from_env.mkdir()

    with env_scope({"VITALS_REPO": str(from_env)}):
        resolved = resolve_repository(settings, home=tmp_path / "home")

    assert resolved == from_env.resolve()


def test_home_checkout_requires_git_directory(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    (tmp_path / "home" / "target").mkdir(parents=True)
    sibling = _git_repo(tmp_path / "work" / "target")

    resolved = resolve_repository(settings, home=tmp_path / "home", env_lookup=_no_env)

    assert resolved == sibling.resolve()


def test_home_checkout_precedes_sibling(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    home_repo = _git_repo(tmp_path / "home" / "target")
    _git_repo(tmp_path / "work" / "target")

    resolved = resolve_repository(settings, home=tmp_path / "home", env_lookup=_no_env)

    assert resolved == home_repo.resolve()


def test_missing_explicit_path_falls_through(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    home_repo = _git_repo(tmp_path / "home" / "target")

    resolved = resolve_repository(
        settings,
        explicit=tmp_path / "does-not-exist",
        home=tmp_path / "home",
        env_lookup=_no_env,
    )

    assert resolved == home_repo.resolve()


def test_unresolvable_lists_every_candidate(tmp_path: Path) -> None:
    settings = _settings(tmp_path)

    with pytest.raises(RepoResolutionError) as excinfo:
        resolve_repository(settings, home=tmp_path / "home", env_lookup=_no_env)

    error = excinfo.value
    assert error.exit_code == 3
    assert [entry.split(":")[0] for entry in error.tried] == [
        "argument",
        "$VITALS_REPO",
        "home",
        "sibling",
    ]
    assert "VITALS_REPO=/path/to/repo" in str(error)


def test_candidate_chain_order(tmp_path: Path) -> None:
    settings = _settings(tmp_path)

    chain = candidate_chain(settings, home=tmp_path / "home", env_lookup=_no_env)

    assert [candidate.source for candidate in chain] == [
        "argument",
        "$VITALS_REPO",
        "home",
        "sibling",
    ]
    assert chain[3].path == (tmp_path / "work" / "target").resolve()
