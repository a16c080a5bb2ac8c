"""Value types for metric sections and the documents that hold them."""

from __future__ import annotations

from typing import Mapping, TypeAlias

JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]

# Section name -> section payload, as carried by snapshots and documents.
SectionMap: TypeAlias = Mapping[str, JSONObject]
