"""Logging set-up: JSON (MozLog) output or human-readable output."""

from __future__ import annotations

import json
import logging
import os
import socket
import sys
from importlib.metadata import PackageNotFoundError, version

LOG_LEVEL_ENV = "RUMBA_LOG"
_PACKAGE = "rumba"
_MARKER = "_rumba_handler"

_SEVERITY = (
    (logging.CRITICAL, 2),
    (logging.ERROR, 3),
    (logging.WARNING, 4),
    (logging.INFO, 6),
)
_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "off": logging.CRITICAL + 10,
}
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def _package_version() -> str:
    try:
        return version(_PACKAGE)
    except PackageNotFoundError:
        return "0.0.0"


def _severity(levelno: int) -> int:
    return next((sev for level, sev in _SEVERITY if levelno >= level), 7)


class JsonLogFormatter(logging.Formatter):
    """Format records as one MozLog JSON object per line."""

    def __init__(
        self,
        logger_name: str | None = None,
        msg_type: str | None = None,
        hostname: str | None = None,
    ) -> None:
        super().__init__()
        self.logger_name = logger_name or f"{_PACKAGE}-{_package_version()}"
        self.msg_type = msg_type or f"{_PACKAGE}:log"
        self.hostname = hostname or socket.gethostname()

    def format(self, record: logging.LogRecord) -> str:
        fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        fields["msg"] = record.getMessage()
        if record.exc_info:
            fields["error"] = self.formatException(record.exc_info)
        entry = {
            "Timestamp": int(record.created * 1_000_000_000),
            "Type": self.msg_type,
            "Logger": self.logger_name,
            "Hostname": self.hostname,
            "EnvVersion": "2.0",
            "Severity": _severity(record.levelno),
            "Pid": record.process if record.process is not None else os.getpid(),
            "Fields": fields,
        }
        return json.dumps(entry, default=str)


def _level_from_env() -> int:
    level = logging.INFO
    for directive in os.environ.get(LOG_LEVEL_ENV, "info").split(","):
        directive = directive.strip().lower()
        if directive and "=" not in directive:
            level = _LEVELS.get(directive, level)
    return level


def _install(handler: logging.Handler) -> None:
    root = logging.getLogger()
    for existing in [h for h in root.handlers if getattr(h, _MARKER, False)]:
        root.removeHandler(existing)
    setattr(handler, _MARKER, True)
    root.addHandler(handler)


def init_logging(json_output: bool) -> None:
    """Send log records to stdout as JSON, or to stderr as readable lines."""
    if json_output:
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonLogFormatter())
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-5s %(name)s: %(message)s")
        )
    _install(handler)
    logging.getLogger().setLevel(_level_from_env())


def reset_logging() -> None:
    """Discard all further records sent through the installed handler."""
    _install(logging.NullHandler())