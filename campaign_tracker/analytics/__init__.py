"""Statistics derived from campaign event logs."""

from . import stats, summary

__all__ = [
    "stats",
    "summary",
]
