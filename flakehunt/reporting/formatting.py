"""Formatting helpers shared by the report renderers."""

from collections.abc import Sequence


def format_duration(seconds: float) -> str:
    """Format a duration as milliseconds, seconds or minutes."""
    millis = int(seconds * 1000)
    if millis < 1000:
        return f"{millis}ms"
    secs = millis / 1000
    if secs < 60:
        return f"{secs:.1f}s"
    return f"{secs / 60:.1f}m"


def format_run_indices(indices: Sequence[int]) -> str:
    """Format run indices as a comma-separated list."""
    return ", ".join(str(index) for index in indices)

