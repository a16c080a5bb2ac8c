"""Durable storage of the published metrics document.

The canonical file is only ever replaced by a temp file whose contents have
already been re-read and parsed; readers see either the old document or the
new one, never a partial or invalid write.
"""

from __future__ import annotations

import os
from pathlib import Path
import stat
import tempfile
from typing import Callable

from vitals.exceptions import DocumentValidationError
from vitals.json_types import JSONObject
from vitals.model import BOOKKEEPING_KEYS, MetricsDocument
from vitals.runtime.json_io import (
    dump_json_pretty,
    load_json_object_path,
    parse_json_object_strict,
)

Serializer = Callable[[JSONObject], str]


def load_document(path: Path) -> MetricsDocument | None:
    payload = load_json_object_path(path)
    if payload is None:
        return None
    return MetricsDocument.from_payload(payload)


def validate_document_text(text: str) -> None:
    try:
        parsed = parse_json_object_strict(text)
    except ValueError as exc:
        raise DocumentValidationError(f"serialized document is not valid JSON: {exc}") from exc
    leaked = [key for key in BOOKKEEPING_KEYS if key in parsed]
    if leaked:
        raise DocumentValidationError(
            f"serialized document carries run bookkeeping: {', '.join(leaked)}"
        )


def _published_mode(path: Path) -> int:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return 0o644


def write_document(
    document: MetricsDocument,
    path: Path,
    *,
    dumps: Serializer = dump_json_pretty,
) -> None:
    try:
        text = dumps(document.to_payload())
    except (TypeError, ValueError) as exc:
        raise DocumentValidationError(f"document could not be serialized: {exc}") from exc

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        validate_document_text(tmp_path.read_text(encoding="utf-8"))
        os.chmod(tmp_path, _published_mode(path))
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
