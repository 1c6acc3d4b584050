"""Top-level package for the campaign tracker.

Email campaign event tracking for the listing marketing app.  Individual
subpackages handle specific concerns: ``tracking`` stores events and serves
the pixel, click and statistics endpoints, ``analytics`` derives reports
from event logs and ``dashboard`` renders them in Streamlit.
"""

from __future__ import annotations

__all__ = [
    "app",
    "config",
    "tracking",
    "analytics",
    "dashboard",
    "sample_data",
]

# SemVer version of the package
__version__: str = "0.1.0"
