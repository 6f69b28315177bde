"""Browser compatibility updates and collection records."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from rumba.helpers import maybe_to_utc, to_utc


def _required_str(data: Mapping[str, Any], key: str) -> str:
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string or null")
    return value


@dataclass(frozen=True)
class Status:
    deprecated: bool
    experimental: bool
    standard_track: bool


def _status(value: Any) -> Status | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValueError("field `status` must be an object or null")
    flags = {}
    for key in ("deprecated", "experimental", "standard_track"):
        flag = value.get(key)
        if not isinstance(flag, bool):
            raise ValueError(f"status field `{key}` must be a boolean")
        flags[key] = flag
    return Status(**flags)


@dataclass(frozen=True)
class Event:
    path: str
    event_type: str
    mdn_url: str | None = None
    source_file: str | None = None
    spec_url: str | None = None
    status: Status | None = None


def _event(value: Any) -> Event:
    if not isinstance(value, Mapping):
        raise ValueError("event must be an object")
    return Event(
        path=_required_str(value, "path"),
        event_type=_required_str(value, "event_type"),
        mdn_url=_optional_str(value, "mdn_url"),
        source_file=_optional_str(value, "source_file"),
        spec_url=_optional_str(value, "spec_url"),
        status=_status(value.get("status")),
    )


def parse_events(value: Any) -> list[Event]:
    """Read the aggregated ``compat`` JSON (a list, or its text) into events."""
    if isinstance(value, (str, bytes)):
        value = json.loads(value)
    if not isinstance(value, list):
        raise ValueError("events must be a list")
    return [_event(item) for item in value]


def _release_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError("field `release_date` must be a date")


@dataclass(frozen=True)
class BcdUpdate:
    """All compatibility events of one browser release."""

    browser: str
    name: str
    engine: str
    engine_version: str
    release_id: str
    release_date: date
    compat: list[Event] = field(default_factory=list)

    @classmethod
    def from_query(cls, row: Mapping[str, Any]) -> BcdUpdate:
        """Build from a grouped query row with a ``compat`` JSON aggregate."""
        return cls(
            browser=_required_str(row, "browser"),
            name=_required_str(row, "browser_name"),
            engine=_required_str(row, "engine"),
            engine_version=_required_str(row, "engine_version"),
            release_id=_required_str(row, "release_id"),
            release_date=_release_date(row.get("release_date")),
            compat=parse_events(row.get("compat")),
        )


@dataclass(frozen=True)
class MultipleCollection:
    """A user's named collection; the item count is 0 when not queried."""

    id: int
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None
    user_id: int
    notes: str | None
    name: str
    collection_item_count: int | None = 0

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "created_at": to_utc(self.created_at),
            "updated_at": to_utc(self.updated_at),
            "deleted_at": maybe_to_utc(self.deleted_at),
            "user_id": self.user_id,
            "notes": self.notes,
            "name": self.name,
            "collection_item_count": self.collection_item_count,
        }