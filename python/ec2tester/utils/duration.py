"""
ec2tester/utils/duration.py

Parses duration literals such as "90s", "5m", "1h30m", "1.5h" or "300ms" into
a timedelta. A bare "0" is accepted; any other value needs a unit on every
component.
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Dict

_UNIT_SECONDS: Dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"([0-9]+\.?[0-9]*|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)")

# Durations are int64 nanoseconds; roughly 2562047h either way.
MAX_DURATION_SECONDS = (2**63 - 1) / 1e9


def parse_duration(text: str) -> timedelta:
    """Parse a duration literal into a timedelta.

    Args:
        text (str): e.g. "90s", "-1m30s", "2h45m", "0".

    Returns:
        timedelta: The parsed duration.

    Raises:
        ValueError: If the literal is empty, malformed or out of range.
    """
    if not text:
        raise ValueError("invalid duration ''")

    sign = 1.0
    body = text
    if body[0] in "+-":
        sign = -1.0 if body[0] == "-" else 1.0
        body = body[1:]

    if body == "0":
        return timedelta(0)
    if not body:
        raise ValueError(f"invalid duration {text!r}")

    total = 0.0
    pos = 0
    while pos < len(body):
        match = _COMPONENT.match(body, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()

    if not total <= MAX_DURATION_SECONDS:
        raise ValueError(f"invalid duration {text!r} (out of range)")
    try:
        return timedelta(seconds=sign * total)
    except OverflowError as exc:
        raise ValueError(f"invalid duration {text!r} (out of range)") from exc


def format_duration(value: timedelta) -> str:
    """Render a timedelta back into the compact literal form, e.g. '1m30s'."""
    seconds = value.total_seconds()
    if seconds == 0:
        return "0s"
    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{int(hours)}h")
    if minutes:
        parts.append(f"{int(minutes)}m")
    if secs:
        parts.append(f"{secs:g}s")
    return sign + "".join(parts)
