"""Script entrypoints for hooks, timers and CI jobs."""

from __future__ import annotations

from pathlib import Path
import sys

# Scripts run from a bare checkout, so make the src/ layout importable.
_VITALS_SRC = str(Path(__file__).resolve().parents[1] / "src")
if _VITALS_SRC not in sys.path:
    sys.path.insert(0, _VITALS_SRC)
