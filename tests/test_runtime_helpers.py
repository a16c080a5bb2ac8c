from __future__ import annotations

import math
from pathlib import Path

import pytest

from vitals.runtime.console import print_stderr
from vitals.runtime.env_policy import env_path, env_text
from vitals.runtime.json_io import (
    dump_json_pretty,
    is_finite_number,
    load_json_object_path,
    parse_json_object_strict,
)


def test_env_path_expands_and_ignores_blank(env_scope) -> None:
    with env_scope({"VITALS_TEST_PATH": "  ~/checkout  ", "VITALS_TEST_BLANK": "   "}):
        assert env_path("VITALS_TEST_PATH") == Path("~/checkout").expanduser()
        assert env_path("VITALS_TEST_BLANK") is None
        assert env_text("VITALS_TEST_BLANK") == ""
    with env_scope({"VITALS_TEST_PATH": None}):
        assert env_path("VITALS_TEST_PATH") is None


def test_parse_strict_rejects_non_finite_literals() -> None:
    for literal in ("NaN", "Infinity", "-Infinity"):
        with pytest.raises(ValueError):
            parse_json_object_strict('{"x": %s}' % literal)
    with pytest.raises(ValueError):
        parse_json_object_strict("[]")
    assert parse_json_object_strict('{"x": 1.5}') == {"x": 1.5}


def test_dump_refuses_nan() -> None:
    with pytest.raises(ValueError):
        dump_json_pretty({"x": math.nan})
    assert dump_json_pretty({"b": 1, "a": 2}) == '{\n  "b": 1,\n  "a": 2\n}\n'


@pytest.mark.parametrize(
    ("value", "expected"),
    [(3, True), (0.5, True), (True, False), (math.inf, False), ("3", False), (None, False)],
)
def test_is_finite_number(value: object, expected: bool) -> None:
    assert is_finite_number(value) is expected


def test_load_json_object_path_handles_missing_and_invalid(tmp_path: Path) -> None:
    assert load_json_object_path(tmp_path / "missing.json") is None
    broken = tmp_path / "broken.json"
    broken.write_bytes(b"\xff\xfe{")
    assert load_json_object_path(broken) is None


def test_print_stderr_writes_one_line(capsys: pytest.CaptureFixture[str]) -> None:
    print_stderr("[metrics] hello")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == "[metrics] hello\n"
