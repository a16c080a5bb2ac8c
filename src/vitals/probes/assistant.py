from __future__ import annotations

from dataclasses import dataclass
import json
import os
from pathlib import Path
import re

from vitals.json_types import JSONObject
from vitals.model import ASSISTANT_ACTIVITY
from vitals.probes.base import ProbeContext, ProbeResult

AGENT_TOOL_NAMES = frozenset({"Task", "Agent"})
SKILL_TOOL_NAMES = frozenset({"Skill"})

_SLUG_RE = re.compile(r"[^A-Za-z0-9-]")


def session_dir_for(repo: Path, session_root: Path) -> Path:
    """Session logs live under a directory named after the repo's absolute path."""
    return session_root.expanduser() / _SLUG_RE.sub("-", str(repo))


@dataclass
class _Tally:
    human_messages: int = 0
    ai_messages: int = 0
    tool_uses: int = 0
    agent_spawns: int = 0
    skill_invocations: int = 0


def _content_blocks(entry: dict[str, object]) -> list[dict[str, object]]:
    message = entry.get("message")
    if not isinstance(message, dict):
        return []
    content = message.get("content")
    if not isinstance(content, list):
        return []
    return [block for block in content if isinstance(block, dict)]


def _tally_entry(tally: _Tally, entry: dict[str, object]) -> None:
    blocks = _content_blocks(entry)
    kind = entry.get("type")
    if kind == "user":
        if not any(block.get("type") == "tool_result" for block in blocks):
            tally.human_messages += 1
    elif kind == "assistant":
        tally.ai_messages += 1
        for block in blocks:
            if block.get("type") != "tool_use":
                continue
            tally.tool_uses += 1
            name = block.get("name")
            if name in AGENT_TOOL_NAMES:
                tally.agent_spawns += 1
            elif name in SKILL_TOOL_NAMES:
                tally.skill_invocations += 1


def _tally_session(tally: _Tally, path: Path) -> None:
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        for line in handle:
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                # Sessions still being written can end in a truncated line.
                continue
            if isinstance(entry, dict):
                _tally_entry(tally, entry)


def _directory_bytes(root: Path) -> int:
    total = 0
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            path = Path(dirpath) / name
            if path.is_symlink():
                continue
            try:
                total += path.stat().st_size
            except OSError:
                continue
    return total


def empty_assistant_metrics() -> JSONObject:
    return {
        "sessions": 0,
        "session_data_mb": 0.0,
        "agent_spawns": 0,
        "skill_invocations": 0,
        "human_messages": 0,
        "ai_messages": 0,
        "tool_uses": 0,
    }


def probe_assistant_activity(context: ProbeContext) -> ProbeResult:
    session_dir = session_dir_for(context.repo, context.settings.session_root)
    if not session_dir.is_dir():
        return ProbeResult.empty(
            ASSISTANT_ACTIVITY,
            empty_assistant_metrics(),
            f"no session directory at {session_dir}",
        )
    sessions = sorted(path for path in session_dir.glob("*.jsonl") if path.is_file())
    tally = _Tally()
    try:
        for path in sessions:
            _tally_session(tally, path)
        size_mb = round(_directory_bytes(session_dir) / (1024 * 1024), 1)
    except OSError as exc:
        return ProbeResult.failed(ASSISTANT_ACTIVITY, f"reading {session_dir}: {exc}")
    metrics: JSONObject = {
        "sessions": len(sessions),
        "session_data_mb": size_mb,
        "agent_spawns": tally.agent_spawns,
        "skill_invocations": tally.skill_invocations,
        "human_messages": tally.human_messages,
        "ai_messages": tally.ai_messages,
        "tool_uses": tally.tool_uses,
    }
    if not sessions:
        return ProbeResult.empty(ASSISTANT_ACTIVITY, metrics, "no session logs")
    return ProbeResult.ok(ASSISTANT_ACTIVITY, metrics)
