"""
Helper functions for formatting data into human-readable strings.
"""

import math
import time


def format_size(bytes_size: float) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 KB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_age(timestamp: float, now: float | None = None) -> str:
    """Formats how long ago a timestamp was (e.g., '3 hours ago')."""
    diff = max(0.0, (now if now is not None else time.time()) - timestamp)
    days, remainder = divmod(int(diff), 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60
    for amount, label in ((days, "day"), (hours, "hour"), (minutes, "minute")):
        if amount > 0:
            return f"{amount} {label}{'s' if amount > 1 else ''} ago"
    return "Just now"


def format_number(value: float, max_decimals: int = 10) -> str:
    """
    Formats a number with at most `max_decimals` fraction digits, without
    trailing zeros (e.g., 1.2500 -> '1.25', 3.0 -> '3').
    """
    if not math.isfinite(value):
        return str(value)
    text = f"{value:.{max_decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


def decimal_places(formatted: str) -> int:
    """Number of digits after the decimal point in a formatted number."""
    _, _, fraction = formatted.partition(".")
    return len(fraction)
