"""Dashboard styling configuration.

Light theme for the Streamlit dashboard.  Colours and spacing are set via
CSS variables so individual views never hard-code them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

import streamlit as st


@dataclass
class Theme:
    """Configuration values for the dashboard's appearance."""

    primary_font: str = "Arial, sans-serif"
    base_font_size: int = 14
    spacing_unit: int = 8
    # (bg, secondary bg, text)
    colours: Tuple[str, str, str] = ("#ffffff", "#f5f5f5", "#222222")
    # Plotly colour sequence for sent / opened / clicked
    series: Tuple[str, str, str] = ("#1f3b63", "#10b981", "#f59e0b")


THEME = Theme()


def apply_theme(theme: Optional[Theme] = None) -> None:
    """Inject the light theme into the Streamlit app."""
    theme = theme or THEME
    bg, bg_2, text = theme.colours
    st.markdown(
        f"""
<style>
:root {{
  --bg: {bg};
  --bg-2: {bg_2};
  --text: {text};
  --brand: {theme.series[0]};
  --radius: 8px;
}}
html, body, .stApp {{
  background: var(--bg) !important;
  color: var(--text) !important;
  font-family: {theme.primary_font};
  font-size: {theme.base_font_size}px;
}}
[data-testid="stSidebar"] {{
  background: var(--bg-2) !important;
}}
[data-testid="stMetric"] {{
  background: var(--bg-2);
  border-radius: var(--radius);
  padding: {theme.spacing_unit}px {theme.spacing_unit * 2}px;
  border-left: 4px solid var(--brand);
}}
</style>
        """,
        unsafe_allow_html=True,
    )


def get_refresh_interval() -> int:
    """Return the auto-refresh interval for the dashboard in seconds.

    Controlled via environment variable ``DASHBOARD_REFRESH_INTERVAL``.
    Defaults to 60 seconds when missing or invalid.
    """
    try:
        return int(os.environ.get("DASHBOARD_REFRESH_INTERVAL", "60"))
    except ValueError:
        return 60
