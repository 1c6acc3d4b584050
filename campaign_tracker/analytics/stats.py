"""Derived statistics for a single campaign's event log.

:func:`compute_campaign_stats` is recomputed on every read; nothing is
cached.  The log is loaded into a pandas frame and aggregated into counts,
unique counts, percentage rates, an hourly timeline, the most clicked links
and a device breakdown.

Rates are percentages rounded half-up to two decimals, ``0.0`` when the
denominator is zero, and clipped to ``[0, 100]`` so that opens without a
matching send cannot produce values above 100.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from campaign_tracker.tracking.models import (
    Campaign,
    EmailEvent,
    format_timestamp,
)

TOP_LINKS_LIMIT = 10

FRAME_COLUMNS = ["event_type", "email", "timestamp", "user_agent", "clicked_url"]

# Microsecond resolution covers every datetime Python can represent;
# nanoseconds stop at 2262.
TIMESTAMP_DTYPE = "datetime64[us, UTC]"

# Evaluated in order; the first matching rule names the device.
DEVICE_RULES: List[Tuple[Callable[[str], bool], str]] = [
    (lambda ua: "Mobile" in ua, "Mobile"),
    (lambda ua: "Tablet" in ua, "Tablet"),
    (lambda ua: "Desktop" in ua, "Desktop"),
    (lambda ua: "Email Client" in ua, "Email Client"),
]
UNKNOWN_DEVICE = "Unknown"


@dataclass(frozen=True)
class CampaignStats:
    """Read-only report derived from one campaign's events."""

    sent: int = 0
    delivered: int = 0
    opened: int = 0
    clicked: int = 0
    bounced: int = 0
    unsubscribed: int = 0
    unique_opens: int = 0
    unique_clicks: int = 0
    delivery_rate: float = 0.0
    open_rate: float = 0.0
    click_rate: float = 0.0
    bounce_rate: float = 0.0
    unsubscribe_rate: float = 0.0
    timeline: List[Dict[str, Any]] = field(default_factory=list)
    top_links: List[Dict[str, Any]] = field(default_factory=list)
    device_stats: List[Dict[str, Any]] = field(default_factory=list)
    total_recipients: int = 0
    campaign_duration: int = 0
    last_activity: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sent": self.sent,
            "delivered": self.delivered,
            "opened": self.opened,
            "clicked": self.clicked,
            "bounced": self.bounced,
            "unsubscribed": self.unsubscribed,
            "uniqueOpens": self.unique_opens,
            "uniqueClicks": self.unique_clicks,
            "deliveryRate": self.delivery_rate,
            "openRate": self.open_rate,
            "clickRate": self.click_rate,
            "bounceRate": self.bounce_rate,
            "unsubscribeRate": self.unsubscribe_rate,
            "timeline": self.timeline,
            "topLinks": self.top_links,
            "deviceStats": self.device_stats,
            "totalRecipients": self.total_recipients,
            "campaignDuration": self.campaign_duration,
            "lastActivity": self.last_activity,
        }


def classify_device(user_agent: str) -> str:
    for matches, label in DEVICE_RULES:
        if matches(user_agent):
            return label
    return UNKNOWN_DEVICE


def rate(numerator: int, denominator: int) -> float:
    """Percentage of ``numerator`` over ``denominator`` in ``[0, 100]``."""
    if denominator <= 0:
        return 0.0
    pct = min(max(numerator / denominator * 100, 0.0), 100.0)
    # Exact halves round up: 1 of 800 is 0.13, not 0.12.
    return float(Decimal(pct).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def events_to_frame(events: Sequence[EmailEvent]) -> pd.DataFrame:
    """Flatten events into a frame, preserving insertion order."""
    if not events:
        frame = pd.DataFrame(columns=FRAME_COLUMNS)
        frame["timestamp"] = pd.Series(
            [], index=frame.index, dtype=TIMESTAMP_DTYPE
        )
        return frame
    frame = pd.DataFrame(
        {
            "event_type": [e.event_type.value for e in events],
            "email": [e.email for e in events],
            "timestamp": pd.Series(
                [e.timestamp for e in events], dtype=TIMESTAMP_DTYPE
            ),
            "user_agent": [e.user_agent for e in events],
            "clicked_url": [e.clicked_url for e in events],
        }
    )
    return frame


def _timeline(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    if frame.empty:
        return []
    buckets = frame.assign(
        hour=frame["timestamp"].dt.floor("h"),
        sent=frame["event_type"].eq("sent").astype(int),
        opened=frame["event_type"].eq("opened").astype(int),
        clicked=frame["event_type"].eq("clicked").astype(int),
    )
    grouped = (
        buckets.groupby("hour", sort=True)[["sent", "opened", "clicked"]]
        .sum()
    )
    return [
        {
            "time": format_timestamp(hour.to_pydatetime()),
            "sent": int(row["sent"]),
            "opened": int(row["opened"]),
            "clicked": int(row["clicked"]),
        }
        for hour, row in grouped.iterrows()
    ]


def _ranked_counts(values: pd.Series, key: str, limit: Optional[int] = None
                   ) -> List[Dict[str, Any]]:
    """Count ``values`` descending; ties keep first-seen order."""
    if values.empty:
        return []
    counts = (
        values.groupby(values, sort=False)
        .size()
        .sort_values(ascending=False, kind="stable")
    )
    if limit is not None:
        counts = counts.head(limit)
    return [{key: label, "count": int(n)} for label, n in counts.items()]


def _top_links(frame: pd.DataFrame, limit: int) -> List[Dict[str, Any]]:
    mask = frame["event_type"].eq("clicked") & frame["clicked_url"].notna()
    urls = frame.loc[mask, "clicked_url"]
    urls = urls[urls != ""]
    return _ranked_counts(urls, "url", limit)


def _device_stats(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    agents = frame["user_agent"].dropna()
    agents = agents[agents != ""]
    return _ranked_counts(agents.map(classify_device), "device")


def _duration_ms(frame: pd.DataFrame) -> int:
    if frame.empty:
        return 0
    span = frame["timestamp"].max() - frame["timestamp"].min()
    return span.to_pytimedelta() // dt.timedelta(milliseconds=1)


def compute_campaign_stats(
    events: Sequence[EmailEvent],
    campaign: Optional[Campaign] = None,
    *,
    assume_delivered: bool = True,
    top_links_limit: int = TOP_LINKS_LIMIT,
) -> CampaignStats:
    """Aggregate a campaign's events into a :class:`CampaignStats` report.

    Parameters
    ----------
    events:
        The campaign's log in insertion order.
    campaign:
        Metadata record, used for ``total_recipients``.
    assume_delivered:
        When true and no ``delivered`` events were recorded, ``delivered``
        equals ``sent``.  When false it stays at zero.
    top_links_limit:
        Maximum entries in ``top_links``.
    """

    frame = events_to_frame(events)
    counts = frame["event_type"].value_counts()

    def _count(kind: str) -> int:
        return int(counts.get(kind, 0))

    sent = _count("sent")
    delivered = _count("delivered")
    if delivered == 0 and assume_delivered:
        delivered = sent
    bounced = _count("bounced")
    unsubscribed = _count("unsubscribed")

    unique_opens = int(frame.loc[frame["event_type"] == "opened", "email"].nunique())
    unique_clicks = int(frame.loc[frame["event_type"] == "clicked", "email"].nunique())

    return CampaignStats(
        sent=sent,
        delivered=delivered,
        opened=_count("opened"),
        clicked=_count("clicked"),
        bounced=bounced,
        unsubscribed=unsubscribed,
        unique_opens=unique_opens,
        unique_clicks=unique_clicks,
        delivery_rate=rate(delivered, sent),
        open_rate=rate(unique_opens, delivered),
        click_rate=rate(unique_clicks, delivered),
        bounce_rate=rate(bounced, sent),
        unsubscribe_rate=rate(unsubscribed, delivered),
        timeline=_timeline(frame),
        top_links=_top_links(frame, top_links_limit),
        device_stats=_device_stats(frame),
        total_recipients=campaign.total_recipients if campaign else 0,
        campaign_duration=_duration_ms(frame),
        last_activity=format_timestamp(events[-1].timestamp) if events else None,
    )


__all__ = [
    "CampaignStats",
    "DEVICE_RULES",
    "classify_device",
    "compute_campaign_stats",
    "events_to_frame",
    "rate",
]
