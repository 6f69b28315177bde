"""StatsD metrics reporting with request tags."""

from __future__ import annotations

import logging
import socket
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from rumba.settings import MetricsSettings
from rumba.tags import Tags

log = logging.getLogger(__name__)


class _Sink(Protocol):
    def emit(self, line: str) -> int: ...


class NopSink:
    """A sink that discards every metric, counting how many it dropped."""

    def __init__(self) -> None:
        self.dropped = 0

    def emit(self, line: str) -> int:
        self.dropped += 1
        return 0


class UdpSink:
    """Send each metric line as one UDP datagram, without blocking."""

    def __init__(self, host: str, port: int) -> None:
        infos = socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_DGRAM)
        self.address = infos[0][4]
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            self._socket.bind(("0.0.0.0", 0))
            self._socket.setblocking(False)
        except OSError:
            self._socket.close()
            raise

    def emit(self, line: str) -> int:
        return self._socket.sendto(line.encode("utf-8"), self.address)

    def close(self) -> None:
        self._socket.close()

    def __enter__(self) -> UdpSink:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class StatsdClient:
    """Format StatsD lines (with DogStatsD tags) and hand them to a sink."""

    def __init__(
        self,
        prefix: str,
        sink: _Sink,
        error_handler: Callable[[OSError], None] | None = None,
    ) -> None:
        self.prefix = prefix.rstrip(".")
        self.sink = sink
        self.error_handler = error_handler

    def _send(
        self, label: str, value: int, kind: str, tags: Mapping[str, str] | None
    ) -> str:
        name = f"{self.prefix}.{label}" if self.prefix else label
        line = f"{name}:{value}|{kind}"
        if tags:
            line += "|#" + ",".join(f"{k}:{v}" for k, v in sorted(tags.items()))
        try:
            self.sink.emit(line)
        except OSError as exc:
            if self.error_handler is not None:
                self.error_handler(exc)
            raise
        return line

    def incr(self, label: str, tags: Mapping[str, str] | None = None) -> str:
        """Increment a counter by one; return the line sent."""
        return self._send(label, 1, "c", tags)

    def count(self, label: str, value: int, tags: Mapping[str, str] | None = None) -> str:
        """Add ``value`` to a counter; return the line sent."""
        return self._send(label, int(value), "c", tags)

    def timing(self, label: str, millis: int, tags: Mapping[str, str] | None = None) -> str:
        """Record a duration in milliseconds; return the line sent."""
        return self._send(label, int(millis), "ms", tags)


@dataclass
class MetricTimer:
    label: str
    start: float
    tags: Tags = field(default_factory=Tags)


class Metrics:
    """Metric reporting bound to one request's tags."""

    def __init__(self, client: StatsdClient | None = None, tags: Tags | None = None) -> None:
        self.client = client
        self.tags = tags
        self.timer: MetricTimer | None = None

    @classmethod
    def noop(cls) -> Metrics:
        """Metrics that are formatted but sent nowhere."""
        return cls(StatsdClient("", NopSink()))

    def _merged(self, tags: Tags | None) -> dict[str, str]:
        merged = dict(self.tags.tags) if self.tags is not None else {}
        if tags is not None:
            merged.update(tags.tags)
        return merged

    def _emit(self, label: str, send: Callable[[], str]) -> str | None:
        try:
            line = send()
        except OSError as exc:
            log.warning("Metric %s error: %r", label, exc)
            return None
        log.debug("metric sent: %s", line)
        return line

    def start_timer(self, label: str, tags: Tags | None = None) -> None:
        """Start timing ``label``; the time is sent by :meth:`finish`."""
        merged = self._merged(tags)
        log.debug("Starting timer %s", label)
        self.timer = MetricTimer(label, time.monotonic(), Tags(merged, {}))

    def finish(self) -> str | None:
        """Send the running timer, if any; return the line sent."""
        timer, self.timer = self.timer, None
        client = self.client
        if client is None or timer is None:
            return None
        lapse = int((time.monotonic() - timer.start) * 1000)
        return self._emit(timer.label, lambda: client.timing(timer.label, lapse, timer.tags.tags))

    def __enter__(self) -> Metrics:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.finish()

    def incr(self, label: str) -> str | None:
        return self.incr_with_tags(label, None)

    def incr_with_tags(self, label: str, tags: Tags | None = None) -> str | None:
        client = self.client
        if client is None:
            return None
        merged = self._merged(tags)
        return self._emit(label, lambda: client.incr(label, merged))

    def count(self, label: str, count: int) -> str | None:
        return self.count_with_tags(label, count, None)

    def count_with_tags(self, label: str, count: int, tags: Tags | None = None) -> str | None:
        client = self.client
        if client is None:
            return None
        merged = self._merged(tags)
        return self._emit(label, lambda: client.count(label, count, merged))


def _log_send_error(exc: OSError) -> None:
    log.warning("Metric send error: %r", exc)


def metrics_from_opts(settings: MetricsSettings) -> StatsdClient:
    """Create a client sending to the configured StatsD host, or nowhere if none."""
    if settings.statsd_host is not None:
        try:
            sink: _Sink = UdpSink(settings.statsd_host, settings.statsd_port)
        except OSError as exc:
            raise OSError(f"Could not generate UDP sink: {exc}") from exc
    else:
        sink = NopSink()
    return StatsdClient(settings.statsd_label, sink, error_handler=_log_send_error)