"""Metric and logging tags derived from a request."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field

# Only these browser and OS values become tags; anything else is "Other"
# to keep metric cardinality down.
_VALID_UA_BROWSER = ("Chrome", "Firefox", "Safari", "Opera")
_VALID_UA_OS = ("Firefox OS", "Linux", "Mac OSX")


@dataclass(frozen=True)
class UserAgentInfo:
    """What could be read from a User-Agent string; unknown fields are empty."""

    name: str = ""
    category: str = ""
    os: str = ""
    os_version: str = ""
    browser_type: str = ""
    version: str = ""
    vendor: str = ""


_WINDOWS = re.compile(r"Windows ([ .a-zA-Z0-9]+)[;)]")
_WINDOWS_NAMES = {
    "NT 10.0": "Windows 10",
    "NT 6.3": "Windows 8.1",
    "NT 6.2": "Windows 8",
    "NT 6.1": "Windows 7",
    "NT 6.0": "Windows Vista",
    "NT 5.2": "Windows Server 2003",
    "NT 5.1": "Windows XP",
    "NT 5.0": "Windows 2000",
    "98": "Windows 98",
    "95": "Windows 95",
    "CE": "Windows CE",
}
_WINDOWS_PHONE = re.compile(r"Phone(?: OS)? ([.0-9]+)")
_IOS_VERSION = re.compile(r"OS (\d+(?:_\d+)*) like Mac OS X")
_MAC_VERSION = re.compile(r"Mac OS X (\d+(?:[._]\d+)*)")
_ANDROID = re.compile(r"Android[- ]?(\d+(?:\.\d+)*)?")
_CHROME_OS = re.compile(r"CrOS \S+ ([.0-9]+)")
_FIREFOX_OS = re.compile(
    r"^Mozilla/[.0-9]+ \((?:Mobile|Tablet);(?:.*;)? rv:([.0-9]+)\) Gecko/[.0-9]+ Firefox/[.0-9]+$"
)
_FIREFOX_OS_VERSIONS = {
    "18.0": "1.0.1",
    "18.1": "1.1",
    "26.0": "1.2",
    "28.0": "1.3",
    "30.0": "1.4",
    "32.0": "2.0",
    "34.0": "2.1",
    "37.0": "2.2",
}

_BROWSER_RULES = (
    ("Edge", "Microsoft", re.compile(r"\bEdg(?:e|A|iOS)?/([.0-9]+)")),
    ("Opera", "Opera", re.compile(r"\bOPR/([.0-9]+)")),
    ("Opera", "Opera", re.compile(r"\bOpera[/ ](?:.*Version/)?([.0-9]+)")),
    ("Internet Explorer", "Microsoft", re.compile(r"MSIE ([.0-9]+);")),
    ("Internet Explorer", "Microsoft", re.compile(r"Trident/[.0-9]+;.*rv:([.0-9]+)")),
    ("Chrome", "Google", re.compile(r"\b(?:Chrome|CrMo|CriOS)/([.0-9]+)")),
    ("Firefox", "Mozilla", re.compile(r"\b(?:Firefox|FxiOS)/([.0-9]+)")),
    ("Safari", "Apple", re.compile(r"Version/([.0-9]+).*\bSafari/")),
)


def _detect_os(agent: str) -> tuple[str, str, str]:
    if "Windows" in agent:
        match = _WINDOWS.search(agent)
        if not match:
            return "Windows UNKNOWN Ver", "", "pc"
        version = match.group(1).strip()
        if version.startswith("Phone"):
            phone = _WINDOWS_PHONE.search(version)
            return "Windows Phone OS", phone.group(1) if phone else "", "smartphone"
        return _WINDOWS_NAMES.get(version, "Windows UNKNOWN Ver"), version, "pc"
    for device in ("iPhone", "iPad", "iPod"):
        if device in agent:
            match = _IOS_VERSION.search(agent)
            version = match.group(1).replace("_", ".") if match else ""
            return device, version, "smartphone"
    if "Mac OS X" in agent:
        match = _MAC_VERSION.search(agent)
        version = match.group(1).replace("_", ".") if match else ""
        return "Mac OSX", version, "pc"
    if "Android" in agent:
        match = _ANDROID.search(agent)
        return "Android", (match.group(1) or "") if match else "", "smartphone"
    if "CrOS" in agent:
        match = _CHROME_OS.search(agent)
        return "ChromeOS", match.group(1) if match else "", "pc"
    match = _FIREFOX_OS.match(agent)
    if match:
        return "Firefox OS", _FIREFOX_OS_VERSIONS.get(match.group(1), ""), "smartphone"
    if "Linux" in agent:
        return "Linux", "", "pc"
    return "", "", ""


def _detect_browser(agent: str) -> tuple[str, str, str]:
    for name, vendor, pattern in _BROWSER_RULES:
        match = pattern.search(agent)
        if match:
            return name, match.group(1), vendor
    return "", "", ""


def parse_user_agent(agent: str) -> tuple[UserAgentInfo, str, str]:
    """Parse a User-Agent; return the details and the OS and browser used for tags."""
    if not agent.strip() or agent == "-":
        info = UserAgentInfo()
    else:
        os_name, os_version, category = _detect_os(agent)
        name, version, vendor = _detect_browser(agent)
        info = UserAgentInfo(
            name=name,
            category=category,
            os=os_name,
            os_version=os_version,
            browser_type="browser" if name else "",
            version=version,
            vendor=vendor,
        )

    if info.os.startswith("Windows"):
        metrics_os = "Windows"
    elif info.os in _VALID_UA_OS:
        metrics_os = info.os
    else:
        metrics_os = "Other"
    metrics_browser = info.name if info.name in _VALID_UA_BROWSER else "Other"
    return info, metrics_os, metrics_browser


def _header_text(value: str | bytes) -> str | None:
    """Header value as text, or None if it holds anything but visible ASCII."""
    if isinstance(value, bytes):
        try:
            value = value.decode("ascii")
        except UnicodeDecodeError:
            return None
    if all(ch == "\t" or 32 <= ord(ch) < 127 for ch in value):
        return value
    return None


def _find_header(headers: Mapping[str, str | bytes], name: str) -> str | bytes | None:
    wanted = name.lower()
    return next((v for k, v in headers.items() if k.lower() == wanted), None)


@dataclass
class Tags:
    """Tags recorded with metrics, plus extra data kept for error reports."""

    tags: dict[str, str] = field(default_factory=dict)
    extra: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_request_head(
        cls, headers: Mapping[str, str | bytes], method: str, uri: str
    ) -> Tags:
        """Build tags from a request's headers, method and URI."""
        tags: dict[str, str] = {}
        extra: dict[str, str] = {}
        raw = _find_header(headers, "User-Agent")
        agent = _header_text(raw) if raw is not None else None
        if agent is not None:
            info, metrics_os, metrics_browser = parse_user_agent(agent)
            candidates = (
                ("ua.os.family", metrics_os),
                ("ua.browser.family", metrics_browser),
                ("ua.name", info.name),
                ("ua.os.ver", info.os_version),
                ("ua.browser.ver", info.version),
            )
            tags.update((label, val) for label, val in candidates if val)
            extra["ua"] = agent
        tags["uri.method"] = method
        # The path has too much cardinality for a metric tag; keep it as extra.
        extra["uri.path"] = uri
        return cls(tags, extra)

    @classmethod
    def with_tags(cls, tags: Mapping[str, str]) -> Tags:
        """Tags holding exactly the given labels."""
        if not tags:
            return cls()
        return cls(dict(tags), {})

    def get(self, label: str) -> str:
        """The tag's value, or the text ``None`` when absent."""
        return self.tags.get(label, "None")

    def extend(self, tags: Mapping[str, str]) -> None:
        """Add labels, replacing any already present."""
        self.tags.update(tags)

    def tag_tree(self) -> dict[str, str]:
        """A sorted copy of the tags."""
        return dict(sorted(self.tags.items()))

    def extra_tree(self) -> dict[str, str]:
        """A sorted copy of the extra data."""
        return dict(sorted(self.extra.items()))

    def to_json(self) -> dict[str, str]:
        """The tags as a JSON object, leaving out empty values."""
        return {k: v for k, v in sorted(self.tags.items()) if v}