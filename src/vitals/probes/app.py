from __future__ import annotations

from pathlib import Path
import re

from vitals.json_types import JSONObject
from vitals.model import APP
from vitals.probes.base import ProbeContext, ProbeResult, count_lines, walk_files

LANGUAGE_SUFFIXES: dict[str, tuple[str, ...]] = {
    "python_loc": (".py",),
    "typescript_loc": (".ts", ".tsx"),
    "javascript_loc": (".js", ".jsx"),
}
JS_TEST_SUFFIXES = (".test.ts", ".test.tsx", ".test.js", ".test.jsx")

_PY_TEST_RE = re.compile(r"def test_")
_JS_TEST_RE = re.compile(r"(^|\s)(it|test)\(")


def _matching_lines(path: Path, pattern: re.Pattern[str]) -> int:
    try:
        with path.open("r", encoding="utf-8", errors="replace") as handle:
            return sum(1 for line in handle if pattern.search(line))
    except OSError:
        return 0


def empty_app_metrics() -> JSONObject:
    metrics: JSONObject = {key: 0 for key in LANGUAGE_SUFFIXES}
    metrics["python_tests"] = 0
    metrics["js_tests"] = 0
    return metrics


def probe_app(context: ProbeContext) -> ProbeResult:
    metrics = empty_app_metrics()
    totals = {key: 0 for key in LANGUAGE_SUFFIXES}
    python_tests = 0
    js_tests = 0
    for path in walk_files(context.repo):
        name = path.name
        for key, suffixes in LANGUAGE_SUFFIXES.items():
            if name.endswith(suffixes):
                totals[key] += count_lines(path)
        if name.startswith("test_") and name.endswith(".py"):
            python_tests += _matching_lines(path, _PY_TEST_RE)
        elif name.endswith(JS_TEST_SUFFIXES):
            js_tests += _matching_lines(path, _JS_TEST_RE)
    metrics.update(totals)
    metrics["python_tests"] = python_tests
    metrics["js_tests"] = js_tests
    if not any(totals.values()):
        return ProbeResult.empty(APP, metrics, "no source files")
    return ProbeResult.ok(APP, metrics)
