"""Durations in nanoseconds with the textual form used in configuration files."""

from __future__ import annotations

import math
import re

__all__ = ["Duration", "parse_duration", "format_duration"]

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

_UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "\u00b5s": MICROSECOND,  # micro sign
    "\u03bcs": MICROSECOND,  # Greek small letter mu
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

_MAX_NANOSECONDS = (1 << 63) - 1
_MAX_FRACTION_DIGITS = 18
_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]*)")


def parse_duration(text: str) -> int:
    """Parse a string such as ``"1h30m"`` or ``"-1.5s"`` into nanoseconds."""
    rest = text
    negative = False
    if rest[:1] in ("-", "+"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return 0
    if not rest:
        raise ValueError(f'time: invalid duration "{text}"')

    total = 0
    pos = 0
    while pos < len(rest):
        match = _COMPONENT.match(rest, pos)
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise ValueError(f'time: invalid duration "{text}"')
        if not unit:
            raise ValueError(f'time: missing unit in duration "{text}"')
        if unit not in _UNITS:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{text}"')
        scale = _UNITS[unit]
        value = int(whole or "0") * scale
        if fraction:
            digits = fraction[:_MAX_FRACTION_DIGITS]
            value += int(int(digits) * (scale / 10 ** len(digits)))
        total += value
        if total > 1 << 63:
            raise ValueError(f'time: invalid duration "{text}"')
        pos = match.end()

    if negative:
        return -total
    if total > _MAX_NANOSECONDS:
        raise ValueError(f'time: invalid duration "{text}"')
    return total


def _split_fraction(value: int, precision: int) -> tuple[int, str]:
    whole, remainder = divmod(value, 10**precision)
    digits = f"{remainder:0{precision}d}".rstrip("0")
    return whole, f".{digits}" if digits else ""


def format_duration(nanoseconds: int) -> str:
    """Render nanoseconds in the shortest unit form, e.g. ``"1h2m3.5s"``."""
    negative = nanoseconds < 0
    magnitude = abs(nanoseconds)

    if magnitude == 0:
        return "0s"

    if magnitude < SECOND:
        if magnitude < MICROSECOND:
            text = f"{magnitude}ns"
        elif magnitude < MILLISECOND:
            whole, frac = _split_fraction(magnitude, 3)
            text = f"{whole}{frac}\u00b5s"
        else:
            whole, frac = _split_fraction(magnitude, 6)
            text = f"{whole}{frac}ms"
    else:
        seconds, frac = _split_fraction(magnitude, 9)
        minutes, seconds = divmod(seconds, 60)
        text = f"{seconds}{frac}s"
        if minutes:
            hours, minutes = divmod(minutes, 60)
            text = f"{minutes}m{text}"
            if hours:
                text = f"{hours}h{text}"

    return f"-{text}" if negative else text


class Duration(int):
    """A span of time in nanoseconds, written out as a duration string."""

    def __new__(cls, nanoseconds: int = 0) -> "Duration":
        return super().__new__(cls, nanoseconds)

    def __str__(self) -> str:
        return format_duration(int(self))

    def __repr__(self) -> str:
        return f"Duration({int(self)})"

    @classmethod
    def from_json(cls, value) -> "Duration":
        """Build a duration from a decoded JSON number (nanoseconds) or string."""
        if isinstance(value, bool):
            raise ValueError("invalid duration")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError("invalid duration")
            return cls(int(value))
        if isinstance(value, str):
            return cls(parse_duration(value))
        raise ValueError("invalid duration")

    def to_json(self) -> str:
        return str(self)