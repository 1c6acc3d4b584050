"""Entry point for the Streamlit dashboard and the embedded tracking server.

Run with ``streamlit run campaign_tracker/app.py``.  The dashboard owns one
:class:`CampaignEventStore` for the lifetime of the Streamlit process.  When
``RUN_TRACKING_WITH_STREAMLIT`` is set, the tracking API is started in a
background thread against that same store, so pixels and clicks served by
the API show up in the dashboard.
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from typing import Tuple

import streamlit as st
import uvicorn

# Ensure project root is on PYTHONPATH so imports like
# `campaign_tracker.dashboard` work under `streamlit run`
root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)

from campaign_tracker.config import TrackerSettings, configure_logging, load_settings
from campaign_tracker.dashboard import stats_view, style
from campaign_tracker.sample_data import seed_sample_campaign
from campaign_tracker.tracking.server import create_app
from campaign_tracker.tracking.store import CampaignEventStore

LOGGER = logging.getLogger(__name__)


def _tracking_enabled() -> bool:
    return os.getenv("RUN_TRACKING_WITH_STREAMLIT", "").lower() in {"1", "true", "yes"}


def _start_tracking_server(store: CampaignEventStore, settings: TrackerSettings) -> None:
    """Serve the tracking API for ``store`` in a daemon thread."""
    app_instance = create_app(store=store, settings=settings)

    def _run_server() -> None:
        uvicorn.run(
            app_instance,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )

    thread = threading.Thread(target=_run_server, name="tracking-server", daemon=True)
    thread.start()
    LOGGER.info("Tracking server started on %s:%d", settings.host, settings.port)


@st.cache_resource
def _bootstrap() -> Tuple[CampaignEventStore, TrackerSettings]:
    """Create the process-wide store once per Streamlit server."""
    settings = load_settings()
    configure_logging(settings)
    store = CampaignEventStore(
        max_events=settings.max_events_per_campaign,
        max_campaigns=settings.max_campaigns,
    )
    if settings.seed_sample_data:
        seed_sample_campaign(store)
    if _tracking_enabled():
        _start_tracking_server(store, settings)
    return store, settings


def main() -> None:
    """Render the Streamlit dashboard."""
    st.set_page_config(page_title="Campaign Tracker", layout="wide")
    style.apply_theme()
    store, settings = _bootstrap()
    st.sidebar.markdown("### Campaign Tracker")
    stats_view.render_stats_view(store, settings)


if __name__ == "__main__":
    main()
