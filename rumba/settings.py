"""Application settings read from a TOML or JSON file and the environment."""

from __future__ import annotations

import base64
import binascii
import json
import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import MISSING, dataclass, field, fields
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

SETTINGS_FILE_ENV = "MDN_SETTINGS"
DEFAULT_SETTINGS_FILE = ".settings.toml"
ENV_PREFIX = "mdn"
ENV_SEPARATOR = "__"
COOKIE_KEY_LENGTH = 64

_TRUE = frozenset({"true", "on", "yes", "1"})
_FALSE = frozenset({"false", "off", "no", "0"})

Parser = Callable[[Any, str], Any]


class SettingsError(Exception):
    """The settings could not be read or are invalid."""


def _text(value: Any, name: str) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise SettingsError(f"invalid type for `{name}`: expected a string")


def _flag(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise SettingsError(f"invalid value for `{name}`: expected a boolean, got {value!r}")


def _integer(low: int, high: int) -> Parser:
    def parse(value: Any, name: str) -> int:
        if isinstance(value, bool):
            raise SettingsError(f"invalid type for `{name}`: expected an integer")
        if isinstance(value, int):
            number = value
        elif isinstance(value, str):
            try:
                number = int(value.strip())
            except ValueError as exc:
                raise SettingsError(
                    f"invalid value for `{name}`: expected an integer, got {value!r}"
                ) from exc
        else:
            raise SettingsError(f"invalid type for `{name}`: expected an integer")
        if not low <= number <= high:
            raise SettingsError(f"invalid value for `{name}`: {number} is out of range")
        return number

    return parse


_u16 = _integer(0, 2**16 - 1)
_u32 = _integer(0, 2**32 - 1)
_usize = _integer(0, 2**64 - 1)
_i64 = _integer(-(2**63), 2**63 - 1)


def _url(value: Any, name: str) -> str:
    text = _text(value, name)
    parts = urlsplit(text)
    if not parts.scheme or not (parts.netloc or parts.path):
        raise SettingsError(f"invalid value for `{name}`: {text!r} is not an absolute URL")
    return text


def _cookie_key(value: Any, name: str) -> bytes:
    text = _text(value, name)
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SettingsError(f"invalid value for `{name}`: not valid base64") from exc
    if len(raw) != COOKIE_KEY_LENGTH:
        raise SettingsError(
            f"invalid length for `{name}`: expected {COOKIE_KEY_LENGTH} bytes, got {len(raw)}"
        )
    return raw


def _setting(parse: Parser, default: Any = MISSING, *, hidden: bool = False) -> Any:
    metadata = {"parse": parse}
    if default is MISSING:
        return field(metadata=metadata, repr=not hidden)
    return field(default=default, metadata=metadata, repr=not hidden)


def _build(cls: type, data: Any, section: str) -> Any:
    if not isinstance(data, Mapping):
        raise SettingsError(f"invalid type for `{section or 'settings'}`: expected a table")
    values = {}
    for spec in fields(cls):
        name = f"{section}.{spec.name}" if section else spec.name
        raw = data.get(spec.name)
        if raw is None:
            if spec.default is MISSING:
                raise SettingsError(f"missing field `{name}`")
            continue
        values[spec.name] = spec.metadata["parse"](raw, name)
    return cls(**values)


def _section(cls: type, default: Any = MISSING) -> Any:
    return _setting(lambda raw, name: _build(cls, raw, name), default)


@dataclass(frozen=True)
class DbSettings:
    uri: str = _setting(_text)


@dataclass(frozen=True)
class ServerSettings:
    host: str = _setting(_text)
    port: int = _setting(_u16)


@dataclass(frozen=True)
class AuthSettings:
    issuer_url: str = _setting(_text)
    client_id: str = _setting(_text)
    client_secret: str = _setting(_text, hidden=True)
    scopes: str = _setting(_text)
    redirect_url: str = _setting(_url)
    auth_cookie_name: str = _setting(_text)
    login_cookie_name: str = _setting(_text)
    auth_cookie_secure: bool = _setting(_flag)
    cookie_key: bytes = _setting(_cookie_key, hidden=True)
    admin_update_bearer_token: str = _setting(_text, hidden=True)


@dataclass(frozen=True)
class ApplicationSettings:
    document_base_url: str = _setting(_text)
    notifications_update_base_url: str = _setting(_text)
    subscriptions_limit_watched_items: int = _setting(_i64)
    subscriptions_limit_collections: int = _setting(_i64)
    encoded_id_salt: str = _setting(_text)


@dataclass(frozen=True)
class SearchSettings:
    url: str = _setting(_text)
    cache_max_age: int = _setting(_u32)
    query_max_length: int = _setting(_usize)


@dataclass(frozen=True)
class LoggingSettings:
    human_logs: bool = _setting(_flag)


@dataclass(frozen=True)
class MetricsSettings:
    statsd_label: str = _setting(_text)
    statsd_port: int = _setting(_u16)
    statsd_host: str | None = _setting(_text, None)


@dataclass(frozen=True)
class SentrySettings:
    dsn: str = _setting(_text)


@dataclass(frozen=True)
class Settings:
    """All settings of the service."""

    db: DbSettings = _section(DbSettings)
    server: ServerSettings = _section(ServerSettings)
    auth: AuthSettings = _section(AuthSettings)
    application: ApplicationSettings = _section(ApplicationSettings)
    search: SearchSettings = _section(SearchSettings)
    logging: LoggingSettings = _section(LoggingSettings)
    metrics: MetricsSettings = _section(MetricsSettings)
    sentry: SentrySettings | None = _section(SentrySettings, None)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Settings:
        """Build settings from nested tables, converting and checking every value."""
        return _build(cls, data, "")


def _read_file(path: Path) -> dict[str, Any]:
    candidates = [path, Path(f"{path}.toml"), Path(f"{path}.json")]
    found = next((p for p in candidates if p.is_file()), None)
    if found is None:
        raise SettingsError(f'configuration file "{path}" not found')
    try:
        text = found.read_text(encoding="utf-8")
        if found.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = tomllib.loads(text)
    except (OSError, ValueError) as exc:
        raise SettingsError(f"could not read {found}: {exc}") from exc
    if not isinstance(data, dict):
        raise SettingsError(f"{found} does not hold a table of settings")
    return data


def _environment_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    prefix = (ENV_PREFIX + ENV_SEPARATOR).lower()
    result: dict[str, Any] = {}
    for key, value in environ.items():
        lowered = key.lower()
        if not lowered.startswith(prefix):
            continue
        path = lowered[len(prefix):].split(ENV_SEPARATOR)
        if not all(path):
            continue
        node = result
        for part in path[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[path[-1]] = value
    return result


def _merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = _merge(dict(current), value)
        else:
            merged[key] = value
    return merged


def load_settings(
    path: str | os.PathLike[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Read the settings file, then apply ``MDN__SECTION__KEY`` environment overrides."""
    env = os.environ if environ is None else environ
    if path is None:
        path = env.get(SETTINGS_FILE_ENV, DEFAULT_SETTINGS_FILE)
    data = _merge(_read_file(Path(path)), _environment_overrides(env))
    return Settings.from_mapping(data)