from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for _path in (ROOT, ROOT / "src"):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))


import pytest

from vitals.config import VitalsSettings
from vitals.model import Period
from tests.env_helpers import env_scope as _env_scope
from tests.fake_commands import FakeRunner


@pytest.fixture
def period() -> Period:
    return Period(start=date(2026, 2, 1), end=date(2026, 3, 31))


@pytest.fixture
def deploy_dir(tmp_path: Path) -> Path:
    path = tmp_path / "deploy"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path: Path, deploy_dir: Path) -> VitalsSettings:
    return VitalsSettings(
        document_path=deploy_dir / "metrics.json",
        session_root=tmp_path / "sessions",
    )


@pytest.fixture
def make_runner():
    return FakeRunner


@pytest.fixture
def env_scope():
    return _env_scope
