"""Typed snapshot and document values.

``Snapshot`` is what one collection run produces; ``MetricsDocument`` is the
published form the dashboard reads. Conversion to and from JSON payloads lives
here so the merge engine only ever sees typed values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable, Mapping

from vitals.json_types import JSONObject, JSONValue, SectionMap

GIT = "git"
ASSISTANT_ACTIVITY = "assistant_activity"
INFRASTRUCTURE = "infrastructure"
APP = "app"

SECTION_NAMES: tuple[str, ...] = (GIT, ASSISTANT_ACTIVITY, INFRASTRUCTURE, APP)

# Run-scoped bookkeeping keys; present in snapshot payloads, never in documents.
REQUESTED_SECTIONS_KEY = "requested_sections"
PR_SOURCE_OK_KEY = "pr_source_ok"
BOOKKEEPING_KEYS: tuple[str, ...] = (REQUESTED_SECTIONS_KEY, PR_SOURCE_OK_KEY)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_sections(raw: str | Iterable[str]) -> frozenset[str]:
    """Parse a section list (CSV text or iterable), rejecting unknown names."""
    if isinstance(raw, str):
        items = [part.strip() for part in raw.split(",") if part.strip()]
    else:
        items = [str(item).strip() for item in raw if str(item).strip()]
    unknown = sorted(set(items) - set(SECTION_NAMES))
    if unknown:
        raise ValueError(
            f"unknown section(s) {', '.join(unknown)}; "
            f"expected any of {', '.join(SECTION_NAMES)}"
        )
    return frozenset(items)


def ordered_sections(names: Iterable[str]) -> list[str]:
    wanted = set(names)
    return [name for name in SECTION_NAMES if name in wanted]


@dataclass(frozen=True)
class Period:
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"period end {self.end} precedes start {self.start}")

    @property
    def span_days(self) -> int:
        return (self.end - self.start).days

    def to_payload(self) -> JSONObject:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

    @classmethod
    def from_payload(cls, payload: object) -> "Period | None":
        if not isinstance(payload, Mapping):
            return None
        try:
            return cls(
                start=date.fromisoformat(str(payload.get("start"))),
                end=date.fromisoformat(str(payload.get("end"))),
            )
        except ValueError:
            return None


def copy_json_value(value: JSONValue) -> JSONValue:
    if isinstance(value, Mapping):
        return {str(key): copy_json_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [copy_json_value(item) for item in value]
    return value


def copy_section(section: Mapping[str, JSONValue]) -> JSONObject:
    return {str(key): copy_json_value(value) for key, value in section.items()}


def _sections_payload(sections: SectionMap) -> JSONObject:
    return {name: copy_section(sections[name]) for name in ordered_sections(sections)}


@dataclass(frozen=True)
class Snapshot:
    collected_at: datetime
    period: Period
    requested_sections: frozenset[str]
    pr_source_ok: bool
    sections: SectionMap = field(default_factory=dict)

    def section(self, name: str) -> JSONObject | None:
        value = self.sections.get(name)
        return value if isinstance(value, dict) else None

    def to_payload(self) -> JSONObject:
        payload: JSONObject = {
            "collected_at": format_timestamp(self.collected_at),
            REQUESTED_SECTIONS_KEY: list(ordered_sections(self.requested_sections)),
            PR_SOURCE_OK_KEY: self.pr_source_ok,
            "period": self.period.to_payload(),
        }
        payload.update(_sections_payload(self.sections))
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "Snapshot":
        """Rebuild a snapshot emitted by ``vitals collect``.

        Raises ``ValueError`` when the payload lacks the bookkeeping needed to
        merge it safely.
        """
        raw_requested = payload.get(REQUESTED_SECTIONS_KEY)
        if not isinstance(raw_requested, list):
            raise ValueError(f"snapshot is missing {REQUESTED_SECTIONS_KEY}")
        period = Period.from_payload(payload.get("period"))
        if period is None:
            raise ValueError("snapshot has no valid period")
        raw_collected = str(payload.get("collected_at", ""))
        try:
            collected_at = datetime.strptime(raw_collected, TIMESTAMP_FORMAT).replace(
                tzinfo=timezone.utc
            )
        except ValueError as exc:
            raise ValueError(f"snapshot collected_at is invalid: {raw_collected!r}") from exc
        requested = parse_sections(str(item) for item in raw_requested)
        sections: dict[str, JSONObject] = {}
        for name in requested:
            value = payload.get(name)
            if isinstance(value, Mapping):
                sections[name] = copy_section(value)
        return cls(
            collected_at=collected_at,
            period=period,
            requested_sections=requested,
            pr_source_ok=payload.get(PR_SOURCE_OK_KEY) is True,
            sections=sections,
        )


@dataclass(frozen=True)
class MetricsDocument:
    collected_at: str
    period: Period | None
    sections: SectionMap = field(default_factory=dict)

    def section(self, name: str) -> JSONObject | None:
        value = self.sections.get(name)
        return value if isinstance(value, dict) else None

    def to_payload(self) -> JSONObject:
        payload: JSONObject = {"collected_at": self.collected_at}
        if self.period is not None:
            payload["period"] = self.period.to_payload()
        payload.update(_sections_payload(self.sections))
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "MetricsDocument":
        # Sections that are not mappings (corrupt or legacy) are dropped here so
        # the merge treats them as never collected.
        sections: dict[str, JSONObject] = {}
        for name in SECTION_NAMES:
            value = payload.get(name)
            if isinstance(value, Mapping):
                sections[name] = copy_section(value)
        return cls(
            collected_at=str(payload.get("collected_at", "")),
            period=Period.from_payload(payload.get("period")),
            sections=sections,
        )
