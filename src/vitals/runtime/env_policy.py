from __future__ import annotations

import os
from pathlib import Path


def env_text(name: str, *, default: str = "") -> str:
    return os.getenv(name, default).strip()


def env_path(name: str) -> Path | None:
    value = env_text(name)
    if not value:
        return None
    return Path(value).expanduser()
