"""Account subscription tiers and account errors."""

from __future__ import annotations

import functools
from enum import Enum
from http import HTTPStatus
from typing import Any


@functools.total_ordering
class Subscription(Enum):
    """A subscription tier, ordered from lowest to highest."""

    CORE = "core"
    MDN_PLUS_5M = "mdn_plus_5m"
    MDN_PLUS_10M = "mdn_plus_10m"
    MDN_PLUS_5Y = "mdn_plus_5y"
    MDN_PLUS_10Y = "mdn_plus_10y"
    UNKNOWN = "Unknown"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Subscription):
            return NotImplemented
        members = list(Subscription)
        return members.index(self) < members.index(other)

    def serialized(self) -> str:
        """The name written out for this tier."""
        return self.value

    def to_db(self) -> Subscription:
        """The tier as stored: unknown tiers are stored as core."""
        if self is Subscription.UNKNOWN:
            return Subscription.CORE
        return self


_BY_NAME = {
    "Core": Subscription.CORE,
    "mdn_plus_5m": Subscription.MDN_PLUS_5M,
    "mdn_plus_10m": Subscription.MDN_PLUS_10M,
    "mdn_plus_5y": Subscription.MDN_PLUS_5Y,
    "mdn_plus_10y": Subscription.MDN_PLUS_10Y,
}


def parse_subscription(value: Any) -> Subscription:
    """Read a tier name as sent by the account service; unknown names map to UNKNOWN."""
    if not isinstance(value, str):
        raise TypeError(f"subscription must be a string, got {type(value).__name__}")
    return _BY_NAME.get(value, Subscription.UNKNOWN)


class FxaError(Exception):
    """Base error for account service failures."""


class UserInfoError(FxaError):
    """Fetching the user info failed."""

    def __init__(self, cause: object) -> None:
        self.cause = cause
        super().__init__(f"Error fetching user info: {cause}")


class UserInfoBadStatusError(FxaError):
    """The user info endpoint answered with an unexpected status."""

    def __init__(self, status: int) -> None:
        self.status = int(status)
        try:
            text = f"{self.status} {HTTPStatus(self.status).phrase}"
        except ValueError:
            text = f"{self.status} <unknown status code>"
        super().__init__(f"Bad status getting user info: {text}")


class UserInfoDeserializeError(FxaError):
    """The user info response could not be decoded."""

    def __init__(self, cause: object) -> None:
        self.cause = cause
        super().__init__(f"Error deserializing user info: {cause}")


class IdTokenMissingError(FxaError):
    """The token response carried no id token."""

    def __init__(self) -> None:
        super().__init__("Id token missing")