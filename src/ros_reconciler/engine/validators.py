"""Reusable attribute validators.

Each factory returns a callable that takes a value and returns an error
message, or None when the value is acceptable.
"""
import ipaddress
from typing import Any, Iterable, Optional

from .schema import Validator
from .suppress import parse_duration


def one_of(choices: Iterable[str]) -> Validator:
    """Value must be one of the listed strings."""
    allowed = tuple(choices)

    def check(value: Any) -> Optional[str]:
        if value not in allowed:
            return f"'{value}' is not one of: {', '.join(allowed)}"
        return None

    return check


def int_between(low: int, high: int) -> Validator:
    """Integer within [low, high]."""
    def check(value: Any) -> Optional[str]:
        if not low <= value <= high:
            return f"{value} is out of range {low}..{high}"
        return None

    return check


def ipv4_address() -> Validator:
    """Dotted-quad IPv4 address."""
    def check(value: Any) -> Optional[str]:
        try:
            ipaddress.IPv4Address(value)
        except ValueError:
            return f"'{value}' is not a valid IPv4 address"
        return None

    return check


def multi_value_in(choices: Iterable[str]) -> Validator:
    """Every element of a comma-separated string or collection is allowed."""
    allowed = set(choices)

    def check(value: Any) -> Optional[str]:
        items = value.split(",") if isinstance(value, str) else list(value)
        bad = [item for item in items if item not in allowed]
        if bad:
            return f"unsupported value(s) {', '.join(bad)}; allowed: {', '.join(sorted(allowed))}"
        return None

    return check


def duration_between(low: str, high: str, allow_infinity: bool = False) -> Validator:
    """RouterOS duration within [low, high], optionally 'infinity'."""
    low_s = parse_duration(low)
    high_s = parse_duration(high)

    def check(value: Any) -> Optional[str]:
        seconds = parse_duration(value)
        if seconds is None:
            return f"'{value}' is not a duration"
        if allow_infinity and str(value).strip().lower() == "infinity":
            return None
        if not low_s <= seconds <= high_s:
            return f"'{value}' is out of range {low}..{high}"
        return None

    return check
