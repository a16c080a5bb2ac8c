from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

from vitals.json_types import JSONObject
from vitals.model import INFRASTRUCTURE
from vitals.probes.base import ProbeContext, ProbeResult, walk_files

WORKFLOW_SUFFIXES = (".yml", ".yaml")


def _top_level_links(root: Path, accept: Callable[[Path], bool]) -> int:
    # Symlinked entries are usually dangling in CI checkouts; count the link itself.
    if not root.is_dir():
        return 0
    return sum(1 for entry in root.iterdir() if entry.is_symlink() and accept(entry))


def _count_files(root: Path, accept: Callable[[Path], bool]) -> int:
    if not root.is_dir():
        return 0
    return sum(1 for path in walk_files(root) if accept(path))


def _is_markdown(path: Path) -> bool:
    return path.suffix == ".md"


def _any(path: Path) -> bool:
    return True


def enabled_plugins(settings_path: Path) -> int:
    try:
        data = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeError, json.JSONDecodeError):
        return 0
    if not isinstance(data, dict):
        return 0
    plugins = data.get("enabledPlugins", {})
    if not isinstance(plugins, dict):
        return 0
    return sum(1 for value in plugins.values() if value)


def empty_infrastructure_metrics() -> JSONObject:
    return {
        "agents": 0,
        "skills": 0,
        "hooks": 0,
        "plugins": 0,
        "plans": 0,
        "workflows": 0,
    }


def probe_infrastructure(context: ProbeContext) -> ProbeResult:
    config_dir = context.repo / context.settings.assistant_config_dir
    workflows_dir = context.repo / ".github" / "workflows"
    metrics = empty_infrastructure_metrics()
    if config_dir.is_dir():
        agents = config_dir / "agents"
        skills = config_dir / "skills"
        hooks = config_dir / "hooks"
        metrics.update(
            {
                "agents": _count_files(agents, _is_markdown)
                + _top_level_links(agents, _is_markdown),
                "skills": _count_files(skills, lambda path: path.name == "SKILL.md")
                + _top_level_links(skills, _any),
                "hooks": _count_files(hooks, _any) + _top_level_links(hooks, _any),
                "plugins": enabled_plugins(config_dir / "settings.json"),
                "plans": _count_files(config_dir / "plans", _is_markdown),
            }
        )
    metrics["workflows"] = _count_files(
        workflows_dir, lambda path: path.suffix in WORKFLOW_SUFFIXES
    )
    if not config_dir.is_dir() and not workflows_dir.is_dir():
        return ProbeResult.empty(
            INFRASTRUCTURE, metrics, f"no {context.settings.assistant_config_dir} or workflows"
        )
    return ProbeResult.ok(INFRASTRUCTURE, metrics)
