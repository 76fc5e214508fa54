"""Diff suppression: decide whether two attribute values are equivalent.

Equivalence is always attribute-scoped. An attribute that declares no
comparator is compared by exact equality.
"""
import math
import re
from typing import Any, Optional

from .schema import Attribute

# RouterOS time units, e.g. "1w2d3h4m5s", "500ms"
_UNIT_SECONDS = {
    "w": 604800.0,
    "d": 86400.0,
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 0.001,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|w|d|h|m|s)")
_DURATION_FULL = re.compile(r"^(?:\d+(?:\.\d+)?(?:ms|w|d|h|m|s))+$")
_CLOCK = re.compile(r"^(?:(\d+)d)?(\d+):(\d{1,2}):(\d{1,2}(?:\.\d+)?)$")


def parse_duration(text: Any) -> Optional[float]:
    """
    Parse a RouterOS duration into seconds.

    Accepts unit strings ("3m", "1h30m", "500ms"), clock notation
    ("00:03:00", "1d02:00:00"), bare seconds ("180") and "infinity".

    Returns:
        Seconds as float, math.inf for infinity, None if unparseable
    """
    if isinstance(text, bool) or text is None:
        return None
    if isinstance(text, (int, float)):
        return float(text)
    value = str(text).strip().lower()
    if not value:
        return None
    if value == "infinity":
        return math.inf
    if re.fullmatch(r"\d+(?:\.\d+)?", value):
        return float(value)

    match = _CLOCK.match(value)
    if match:
        days, hours, minutes, seconds = match.groups()
        return (
            int(days or 0) * 86400
            + int(hours) * 3600
            + int(minutes) * 60
            + float(seconds)
        )

    if not _DURATION_FULL.match(value):
        return None
    return sum(float(n) * _UNIT_SECONDS[u] for n, u in _DURATION_PART.findall(value))


def duration_equal(a: Any, b: Any) -> bool:
    """Compare two durations by their length ("3m" == "180s").

    Values that do not parse as durations fall back to exact comparison.
    """
    if a == b:
        return True
    left = parse_duration(a)
    right = parse_duration(b)
    if left is None or right is None:
        return False
    return left == right


def _choices(text: str) -> frozenset[str]:
    return frozenset(item.strip() for item in text.split(",") if item.strip())


def multi_value_equal(a: Any, b: Any) -> bool:
    """Compare comma-separated choice lists regardless of order.

    RouterOS reports multi-value properties ("ip,ipv6") in its own order.
    """
    if a == b:
        return True
    if isinstance(a, str) and isinstance(b, str):
        return _choices(a) == _choices(b)
    return False


class DiffSuppressor:
    """Apply per-attribute equivalence rules."""

    def equivalent(self, attr: Attribute, desired: Any, observed: Any) -> bool:
        if desired is None or observed is None:
            return desired is None and observed is None
        if attr.equivalence is not None:
            return attr.equivalence(desired, observed)
        return desired == observed
