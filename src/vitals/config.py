from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "vitals.toml"

DEFAULT_TARGET_NAME = "conflictiq"
DEFAULT_TARGET_ENV = "VITALS_REPO"
DEFAULT_PERIOD_START = date(2026, 2, 1)
DEFAULT_DOCUMENT_PATH = Path("metrics.json")
DEFAULT_REMOTE = "origin"
DEFAULT_BRANCH = "main"
DEFAULT_SESSION_ROOT = Path("~/.claude/projects")
DEFAULT_ASSISTANT_CONFIG_DIR = ".claude"
DEFAULT_PR_LIMIT = 500

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def _section(data: TomlTable, name: str) -> TomlTable:
    section = data.get(name, {})
    return section if isinstance(section, dict) else {}


def _as_text(value: TomlValue, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _as_date(value: TomlValue, default: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return default
    return default


def _as_positive_int(value: TomlValue, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class VitalsSettings:
    """Resolved configuration for one run; every field has a usable default."""

    target_name: str = DEFAULT_TARGET_NAME
    target_env: str = DEFAULT_TARGET_ENV
    period_start: date = DEFAULT_PERIOD_START
    document_path: Path = DEFAULT_DOCUMENT_PATH
    remote: str = DEFAULT_REMOTE
    branch: str = DEFAULT_BRANCH
    session_root: Path = DEFAULT_SESSION_ROOT
    assistant_config_dir: str = DEFAULT_ASSISTANT_CONFIG_DIR
    pr_limit: int = DEFAULT_PR_LIMIT

    @classmethod
    def from_table(cls, data: TomlTable, *, root: Path | None = None) -> "VitalsSettings":
        target = _section(data, "target")
        period = _section(data, "period")
        document = _section(data, "document")
        publish = _section(data, "publish")
        assistant = _section(data, "assistant")
        pull_requests = _section(data, "pull_requests")
        document_path = Path(_as_text(document.get("path"), str(DEFAULT_DOCUMENT_PATH)))
        if root is not None and not document_path.is_absolute():
            document_path = root / document_path
        return cls(
            target_name=_as_text(target.get("name"), DEFAULT_TARGET_NAME),
            target_env=_as_text(target.get("env"), DEFAULT_TARGET_ENV),
            period_start=_as_date(period.get("start"), DEFAULT_PERIOD_START),
            document_path=document_path,
            remote=_as_text(publish.get("remote"), DEFAULT_REMOTE),
            branch=_as_text(publish.get("branch"), DEFAULT_BRANCH),
            session_root=Path(
                _as_text(assistant.get("session_root"), str(DEFAULT_SESSION_ROOT))
            ),
            assistant_config_dir=_as_text(
                assistant.get("config_dir"), DEFAULT_ASSISTANT_CONFIG_DIR
            ),
            pr_limit=_as_positive_int(pull_requests.get("limit"), DEFAULT_PR_LIMIT),
        )

    @property
    def document_root(self) -> Path:
        return self.document_path.parent


def load_settings(
    root: Path | None = None, config_path: Path | None = None
) -> VitalsSettings:
    base = root if root is not None else Path.cwd()
    return VitalsSettings.from_table(
        load_config(root=base, config_path=config_path), root=base
    )
