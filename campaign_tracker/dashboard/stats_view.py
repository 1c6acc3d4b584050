"""Campaign statistics view for the Streamlit dashboard.

Reads directly from the in-process :class:`CampaignEventStore`, so the view
and an embedded tracking server observe the same events.  Users pick a
campaign and see headline rates, the hourly timeline, most clicked links
and the device breakdown.
"""

from __future__ import annotations

import datetime as dt
from typing import Dict

import pandas as pd
import plotly.express as px
import streamlit as st
import streamlit.components.v1 as components

from campaign_tracker.analytics.stats import (
    TIMESTAMP_DTYPE,
    CampaignStats,
    compute_campaign_stats,
)
from campaign_tracker.config import TrackerSettings
from campaign_tracker.dashboard import style
from campaign_tracker.tracking.store import CampaignEventStore


def timeline_frame(stats: CampaignStats) -> pd.DataFrame:
    """Long-format timeline (one row per hour and series) for plotting."""
    if not stats.timeline:
        return pd.DataFrame(columns=["time", "series", "count"])
    wide = pd.DataFrame(stats.timeline)
    wide["time"] = pd.Series(
        [dt.datetime.fromisoformat(t) for t in wide["time"]],
        dtype=TIMESTAMP_DTYPE,
    )
    return wide.melt(
        id_vars="time",
        value_vars=["sent", "opened", "clicked"],
        var_name="series",
        value_name="count",
    )


def headline_metrics(stats: CampaignStats) -> Dict[str, str]:
    return {
        "Sent": f"{stats.sent:,}",
        "Delivered": f"{stats.delivered:,} ({stats.delivery_rate:.2f}%)",
        "Unique opens": f"{stats.unique_opens:,} ({stats.open_rate:.2f}%)",
        "Unique clicks": f"{stats.unique_clicks:,} ({stats.click_rate:.2f}%)",
        "Bounced": f"{stats.bounced:,} ({stats.bounce_rate:.2f}%)",
        "Unsubscribed": f"{stats.unsubscribed:,} ({stats.unsubscribe_rate:.2f}%)",
    }


def render_stats_view(store: CampaignEventStore, settings: TrackerSettings) -> None:
    """Render the statistics page in Streamlit."""
    st.header("Campaign Statistics")

    refresh_interval = style.get_refresh_interval()
    components.html(
        f"""
        <script>
            setTimeout(function() {{
                window.location.reload();
            }}, {refresh_interval * 1000});
        </script>
        """,
        height=0,
        width=0,
    )

    campaigns = store.list_campaigns()
    if not campaigns:
        st.info("No campaigns tracked yet.")
        return

    names = {c.campaign_id: f"{c.campaign_name} ({c.status.value})" for c in campaigns}
    selected = st.sidebar.selectbox(
        "Select campaign", list(names), format_func=names.__getitem__
    )
    campaign = store.get_campaign(selected)
    events = store.get_events(selected)
    stats = compute_campaign_stats(
        events,
        campaign,
        assume_delivered=settings.assume_delivered,
        top_links_limit=settings.top_links_limit,
    )

    metrics = headline_metrics(stats)
    cols = st.columns(len(metrics))
    for col, (label, value) in zip(cols, metrics.items()):
        col.metric(label, value)

    if not events:
        st.info("No events recorded yet.")
        return

    timeline = timeline_frame(stats)
    fig = px.line(
        timeline,
        x="time",
        y="count",
        color="series",
        markers=True,
        color_discrete_sequence=list(style.THEME.series),
        labels={"time": "Hour (UTC)", "count": "Events"},
        title="Hourly activity",
    )
    st.plotly_chart(fig, use_container_width=True)

    links_col, devices_col = st.columns(2)
    with links_col:
        st.subheader("Top links")
        if stats.top_links:
            st.dataframe(pd.DataFrame(stats.top_links), hide_index=True)
        else:
            st.caption("No clicks yet.")
    with devices_col:
        st.subheader("Devices")
        if stats.device_stats:
            devices = pd.DataFrame(stats.device_stats)
            st.plotly_chart(
                px.pie(devices, names="device", values="count"),
                use_container_width=True,
            )
        else:
            st.caption("No user agent data.")

    st.subheader("Recent Events")
    recent = pd.DataFrame(
        [e.to_dict() for e in events[-settings.recent_events_limit:]]
    )
    st.dataframe(
        recent.sort_values(by="timestamp", ascending=False),
        hide_index=True,
    )
