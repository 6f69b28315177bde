"""Read browser, feature and update data for the compatibility tables."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date
from itertools import islice
from pathlib import Path
from typing import Any, TypeVar

log = logging.getLogger(__name__)

ADDED_STABLE = "added_stable"
REMOVED_STABLE = "removed_stable"
FEATURE_BATCH_SIZE = 1000

T = TypeVar("T")


class SyncError(Exception):
    """The data for synchronizing compatibility updates is missing or malformed."""


@dataclass(frozen=True)
class BrowserRow:
    name: str
    display_name: str
    accepts_flags: bool
    accepts_webextensions: bool
    pref_url: str | None = None
    preview_name: str | None = None


@dataclass(frozen=True)
class ReleaseRow:
    browser: str
    engine: str
    engine_version: str
    release_id: str
    release_date: date
    release_notes: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class FeatureRow:
    path: str
    source_file: str
    mdn_url: str | None = None
    spec_url: str | None = None
    deprecated: bool | None = None
    experimental: bool | None = None
    standard_track: bool | None = None


@dataclass(frozen=True)
class UpdateEvent:
    """A feature added to or removed from one browser release."""

    browser: str
    release_id: str
    event_type: str
    path: str


def load_json(path: str | os.PathLike[str]) -> Any:
    """Read a JSON document from a file, raising SyncError on any failure."""
    name = Path(path).name
    try:
        with open(path, encoding="utf-8") as handle:
            text = handle.read()
    except OSError as exc:
        raise SyncError(f"Error loading {name}: {exc}") from exc
    try:
        return json.loads(text)
    except ValueError as exc:
        raise SyncError(f"Error deserializing data from {name}: {exc}") from exc


def _opt_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None


def _req_str(data: Mapping[str, Any], key: str, context: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise SyncError(f"`{key}` must be a string in {context}")
    return value


def _req_bool(data: Mapping[str, Any], key: str, context: str) -> bool:
    value = data.get(key)
    if not isinstance(value, bool):
        raise SyncError(f"`{key}` must be a boolean in {context}")
    return value


def _object(value: Any, context: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SyncError(f"expected an object for {context}")
    return value


def _array(value: Any, context: str) -> list[Any]:
    if not isinstance(value, list):
        raise SyncError(f"expected an array for {context}")
    return value


def _releases(browser: str, releases: Mapping[str, Any]) -> Iterator[ReleaseRow]:
    for release_id in sorted(releases):
        value = releases[release_id]
        info = value if isinstance(value, Mapping) else {}
        if not isinstance(info.get("engine"), str):
            log.error("No engine for %r", value)
        raw_date = info.get("release_date")
        if not isinstance(raw_date, str):
            log.error("No release_date for %r", value)
            # A release without a date ends the browser's release list.
            return
        try:
            release_date = date.fromisoformat(raw_date)
        except ValueError as exc:
            raise SyncError(f"invalid release_date {raw_date!r} for {browser}") from exc
        yield ReleaseRow(
            browser=browser,
            engine=_opt_str(info, "engine") or "Unknown",
            engine_version=_opt_str(info, "engine_version") or "Unknown",
            release_id=release_id,
            release_date=release_date,
            release_notes=_opt_str(info, "release_notes"),
            status=_opt_str(info, "status"),
        )


def parse_browsers(data: Any) -> tuple[list[BrowserRow], list[ReleaseRow]]:
    """Read the browsers document into browser rows and their dated releases."""
    browsers_data = _object(data, "browsers")
    browsers: list[BrowserRow] = []
    releases: list[ReleaseRow] = []
    for name in sorted(browsers_data):
        info = _object(browsers_data[name], f"browser {name}")
        context = f"browser {name}"
        browsers.append(
            BrowserRow(
                name=name,
                display_name=_req_str(info, "name", context),
                accepts_flags=_req_bool(info, "accepts_flags", context),
                accepts_webextensions=_req_bool(info, "accepts_webextensions", context),
                pref_url=_opt_str(info, "pref_url"),
                preview_name=_opt_str(info, "preview_name"),
            )
        )
        releases.extend(_releases(name, _object(info.get("releases"), f"{name} releases")))
    return browsers, releases


def _status_flag(status: Any, key: str) -> bool | None:
    if not isinstance(status, Mapping):
        return None
    if key not in status:
        raise SyncError(f"status is missing `{key}`")
    value = status[key]
    return value if isinstance(value, bool) else None


def parse_features(data: Any) -> list[FeatureRow]:
    """Read the features document; features without a source file are skipped."""
    features: list[FeatureRow] = []
    for item in _array(data, "features"):
        entry = item if isinstance(item, Mapping) else {}
        source_file = _opt_str(entry, "source_file")
        if source_file is None:
            log.error("No source file found for path. %r", item)
            continue
        status = entry.get("status")
        features.append(
            FeatureRow(
                path=_req_str(entry, "path", "feature"),
                source_file=source_file,
                mdn_url=_opt_str(entry, "mdn_url"),
                spec_url=_opt_str(entry, "spec_url"),
                deprecated=_status_flag(status, "deprecated"),
                experimental=_status_flag(status, "experimental"),
                standard_track=_status_flag(status, "standard_track"),
            )
        )
    return features


def _first_nonempty(parts: list[Any], key: str) -> list[Any] | None:
    for part in parts:
        if isinstance(part, Mapping):
            value = part.get(key)
            if isinstance(value, list) and value:
                return value
    return None


def _paths(values: list[Any]) -> Iterator[str]:
    for value in values:
        if not isinstance(value, str):
            raise SyncError(f"feature path must be a string, got {value!r}")
        yield value


def parse_updates(data: Any) -> list[UpdateEvent]:
    """Read the added/removed document into update events, added before removed."""
    events: list[UpdateEvent] = []
    for item in _array(data, "updates"):
        parts = _array(item, "update entry")
        browser_part = next(
            (p for p in parts if isinstance(p, Mapping) and isinstance(p.get("browser"), str)),
            None,
        )
        if browser_part is None:
            raise SyncError(f"no browser in update entry {item!r}")
        browser = browser_part["browser"]
        release_id = _req_str(browser_part, "version", "update entry")
        added = _first_nonempty(parts, "added")
        removed = _first_nonempty(parts, "removed")
        for kind, paths in ((ADDED_STABLE, added), (REMOVED_STABLE, removed)):
            if paths is not None:
                events.extend(
                    UpdateEvent(browser, release_id, kind, path) for path in _paths(paths)
                )
    return events


def batched(items: Iterable[T], size: int = FEATURE_BATCH_SIZE) -> Iterator[list[T]]:
    """Yield consecutive lists of at most ``size`` items."""
    if size <= 0:
        raise ValueError("size must be positive")
    iterator = iter(items)
    while chunk := list(islice(iterator, size)):
        yield chunk


def build_path_map(
    metadata: Any,
) -> tuple[list[tuple[str, str, str]], dict[str, tuple[str, str]]]:
    """From document metadata, pair compat paths with their URL and short title.

    Returns the first path of each document with its URL and title, and a map
    from every compat path to ``(mdn_url, short_title)``.
    """
    primary: list[tuple[str, str, str]] = []
    path_map: dict[str, tuple[str, str]] = {}
    for item in _array(metadata, "metadata"):
        if not isinstance(item, Mapping):
            continue
        paths = item.get("browserCompat")
        if not isinstance(paths, list):
            continue
        if len(paths) > 1:
            log.warning("Multiple paths detected for %r", paths)
        mdn_url = _req_str(item, "mdn_url", "metadata")
        short_title = _req_str(item, "short_title", "metadata")
        compat_paths = list(_paths(paths))
        if not compat_paths:
            raise SyncError(f"empty browserCompat for {mdn_url}")
        for path in compat_paths:
            path_map[path] = (mdn_url, short_title)
        primary.append((compat_paths[0], mdn_url, short_title))
    return primary, path_map


def fallback_for_path(
    path: str, path_map: Mapping[str, tuple[str, str]]
) -> tuple[str, tuple[str, str]] | None:
    """Find the nearest parent path with metadata: ``(subpath, (url, title))``."""
    parts = path.split(".")[:-1]
    while parts:
        subpath = ".".join(parts)
        log.info("checking subpath %s for %s", subpath, path)
        replacement = path_map.get(subpath)
        if replacement is not None:
            return subpath, replacement
        parts.pop()
    return None