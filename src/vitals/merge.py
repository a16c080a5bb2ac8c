"""Fold a fresh snapshot into the previously published document.

Sections are replaced or preserved whole. The only finer-grained rule is a
field carry-over: when a field's source was unavailable this run, the named
fields of an otherwise fresh section keep their previously published values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from vitals.json_types import JSONObject
from vitals.model import (
    GIT,
    SECTION_NAMES,
    MetricsDocument,
    Snapshot,
    copy_json_value,
    copy_section,
    format_timestamp,
)
from vitals.runtime.json_io import is_finite_number

PR_MERGED_COUNT = "pr_merged_count"
PR_MERGED_BY_MONTH = "pr_merged_by_month"


@dataclass(frozen=True)
class FieldCarryOver:
    section: str
    guard_field: str
    fields: tuple[str, ...]
    degraded: Callable[[Snapshot], bool]
    reason: str

    def applies(self, previous_section: JSONObject, fresh: Snapshot) -> bool:
        if self.section not in fresh.requested_sections:
            return False
        if not self.degraded(fresh):
            return False
        guard = previous_section.get(self.guard_field, 0)
        return is_finite_number(guard) and guard > 0

    def apply(self, previous_section: JSONObject, fresh_section: JSONObject) -> JSONObject:
        merged = copy_section(fresh_section)
        for name in self.fields:
            if name in previous_section:
                merged[name] = copy_json_value(previous_section[name])
        return merged


PR_FIELDS_CARRY_OVER = FieldCarryOver(
    section=GIT,
    guard_field=PR_MERGED_COUNT,
    fields=(PR_MERGED_COUNT, PR_MERGED_BY_MONTH),
    degraded=lambda snapshot: not snapshot.pr_source_ok,
    reason="pull-request source unavailable",
)

DEFAULT_CARRY_OVERS: tuple[FieldCarryOver, ...] = (PR_FIELDS_CARRY_OVER,)


@dataclass(frozen=True)
class MergeOutcome:
    document: MetricsDocument
    notes: tuple[str, ...]


def merge_with_notes(
    previous: MetricsDocument | None,
    fresh: Snapshot,
    *,
    carry_overs: tuple[FieldCarryOver, ...] = DEFAULT_CARRY_OVERS,
) -> MergeOutcome:
    notes: list[str] = []
    sections: dict[str, JSONObject] = {}
    for name in SECTION_NAMES:
        previous_section = previous.section(name) if previous is not None else None
        if name not in fresh.requested_sections and previous_section is not None:
            sections[name] = copy_section(previous_section)
            notes.append(f"Preserved {name} from previous run (not requested)")
            continue
        fresh_section = fresh.section(name)
        if fresh_section is not None:
            sections[name] = copy_section(fresh_section)
        elif name in fresh.requested_sections:
            sections[name] = {}

    for rule in carry_overs:
        previous_section = previous.section(rule.section) if previous is not None else None
        if previous_section is None or not rule.applies(previous_section, fresh):
            continue
        sections[rule.section] = rule.apply(
            previous_section, sections.get(rule.section, {})
        )
        notes.append(
            f"Preserved {rule.section} {', '.join(rule.fields)} ({rule.reason})"
        )

    document = MetricsDocument(
        collected_at=format_timestamp(fresh.collected_at),
        period=fresh.period,
        sections=sections,
    )
    return MergeOutcome(document=document, notes=tuple(notes))


def merge(previous: MetricsDocument | None, fresh: Snapshot) -> MetricsDocument:
    return merge_with_notes(previous, fresh).document
