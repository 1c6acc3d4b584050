"""Streamlit dashboard components.

See the documentation in ``style.py`` for thematic configuration.
"""

from __future__ import annotations

from . import stats_view
from . import style


__all__ = ["stats_view", "style"]
