from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Mapping


def load_json_object_path(
    path: Path,
    *,
    encoding: str = "utf-8",
) -> dict[str, object] | None:
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding=encoding))
    except (OSError, UnicodeError, json.JSONDecodeError):
        return None
    if not isinstance(payload, Mapping):
        return None
    return {str(key): payload[key] for key in payload}


def _reject_constant(name: str) -> object:
    raise ValueError(f"non-finite number {name} is not valid JSON")


def parse_json_object_strict(text: str) -> dict[str, object]:
    """Parse ``text`` as a JSON object, rejecting NaN/Infinity literals.

    Raises ``ValueError`` (``json.JSONDecodeError`` included) on anything that
    is not a well-formed JSON object.
    """
    payload = json.loads(text, parse_constant=_reject_constant)
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    return payload


def dump_json_pretty(payload: object) -> str:
    return json.dumps(payload, indent=2, sort_keys=False, allow_nan=False) + "\n"


def is_finite_number(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)
