"""
Duration string parsing.

Accepts the duration notation used by the helper's config files:

    >>> parse_duration("5s")
    5.0
    >>> parse_duration("1m30s")
    90.0
    >>> parse_duration("250ms")
    0.25
"""

import re

SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60

_UNITS: dict[str, float] = {
    "h": SECONDS_PER_HOUR,
    "m": SECONDS_PER_MINUTE,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ns": 1e-9,
}

# Longer units first so "ms" is not read as "m" followed by garbage
_COMPONENT = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|μs|ms|h|m|s)")


class InvalidDurationError(ValueError):
    """Raised when a duration string cannot be parsed."""

    pass


def parse_duration(duration_str: str) -> float:
    """
    Parse a duration string to seconds.

    A duration is a sequence of decimal numbers, each with a unit suffix
    (h, m, s, ms, us, ns), e.g. "300ms" or "2h45m". A bare "0" is zero.

    Args:
        duration_str: Duration string to parse

    Returns:
        Duration in seconds as float

    Raises:
        InvalidDurationError: If the string is empty or malformed
    """
    if not isinstance(duration_str, str) or not duration_str.strip():
        raise InvalidDurationError("Duration string cannot be empty")

    text = duration_str.strip()
    if text == "0":
        return 0.0

    matches = _COMPONENT.findall(text)
    if not matches:
        raise InvalidDurationError(f"Could not parse duration string: '{text}'")

    # Every character must belong to a matched component
    if "".join(value + unit for value, unit in matches) != text:
        raise InvalidDurationError(f"Invalid characters in duration string: '{text}'")

    return sum(float(value) * _UNITS[unit] for value, unit in matches)
