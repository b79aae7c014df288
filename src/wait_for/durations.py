"""Human-readable rendering of durations held as float seconds."""

from __future__ import annotations

UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # U+00B5 micro sign
    "μs": 1e-6,  # U+03BC greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def format_duration(seconds: float) -> str:
    """Render ``seconds`` the way durations are written on the command line.

    Sub-second values use ``ms``/``µs``; longer values are split into hours,
    minutes and seconds (``1m30s``, ``2h0m5s``).
    """

    if seconds == 0:
        return "0s"
    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)
    if seconds < 1e-3:
        return f"{sign}{round(seconds * 1e6, 3):g}µs"
    if seconds < 1:
        return f"{sign}{round(seconds * 1e3, 3):g}ms"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    text = f"{round(secs, 6):g}s"
    if hours:
        text = f"{int(hours)}h{int(minutes)}m{text}"
    elif minutes:
        text = f"{int(minutes)}m{text}"
    return sign + text


__all__ = ["UNIT_SECONDS", "format_duration"]
