"""Human readable durations and dates for the Info tab."""

from datetime import datetime, tzinfo
from typing import Literal, Optional, Sequence

DurationUnit = Literal["y", "mo", "w", "d", "h", "m", "s"]
DateStyle = Literal["full", "long", "medium", "short"]

_UNITS: dict[str, tuple[str, int]] = {
    "y": ("year", 31_557_600_000),
    "mo": ("month", 2_629_800_000),
    "w": ("week", 604_800_000),
    "d": ("day", 86_400_000),
    "h": ("hour", 3_600_000),
    "m": ("minute", 60_000),
    "s": ("second", 1_000),
}


def ms_to_duration(ms: int | float, units: Sequence[DurationUnit] = ("d", "h", "m")) -> str:
    """Convert milliseconds to english words, rounding the smallest unit.

    ms_to_duration(5_400_000, units=("h", "m")) -> "1 hour, 30 minutes"
    """
    if not units:
        raise ValueError("at least one unit is required")
    ordered = sorted(units, key=lambda u: _UNITS[u][1], reverse=True)
    smallest_ms = _UNITS[ordered[-1]][1]
    remaining = round(abs(ms) / smallest_ms) * smallest_ms

    pieces = []
    for unit in ordered:
        name, unit_ms = _UNITS[unit]
        count, remaining = divmod(remaining, unit_ms)
        if count:
            pieces.append(f"{count} {name}{'' if count == 1 else 's'}")
    if not pieces:
        return f"0 {_UNITS[ordered[-1]][0]}s"
    return ", ".join(pieces)


def minutes_to_duration(
    minutes: Optional[int], units: Sequence[DurationUnit] = ("d", "h", "m")
) -> str:
    """Duration text for a minutes counter, "--" when unknown or zero."""
    if not minutes:
        return "--"
    return ms_to_duration(minutes * 60_000, units)


def ts_to_locale_date(
    ts: int, date_style: DateStyle = "long", tz: Optional[tzinfo] = None
) -> str:
    """Format a unix timestamp (seconds) as a date in the given style."""
    dt = datetime.fromtimestamp(ts, tz)
    if date_style == "full":
        return f"{dt:%A}, {dt:%B} {dt.day}, {dt.year}"
    if date_style == "long":
        return f"{dt:%B} {dt.day}, {dt.year}"
    if date_style == "medium":
        return f"{dt:%b} {dt.day}, {dt.year}"
    return f"{dt.month}/{dt.day}/{dt:%y}"
