"""Demonstration campaign for a freshly started tracker.

Seeds ``campaign_sample_123`` with 100 sends spaced a minute apart, an open
for every third recipient and a click on the property page for every tenth.
Enabled with ``CAMPAIGN_TRACKER_SEED_SAMPLE=1``.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from campaign_tracker.tracking.models import CampaignStatus, EventType, utcnow
from campaign_tracker.tracking.store import CampaignEventStore

LOGGER = logging.getLogger(__name__)

SAMPLE_CAMPAIGN_ID = "campaign_sample_123"
SAMPLE_RECIPIENTS = 100
SAMPLE_URL = "https://example.com/property/123"


def seed_sample_campaign(
    store: CampaignEventStore, now: Optional[dt.datetime] = None
) -> None:
    now = now or utcnow()
    store.upsert_campaign(
        SAMPLE_CAMPAIGN_ID,
        {
            "campaign_name": "Sample Property Promotion Campaign",
            "created_at": now - dt.timedelta(days=1),
            "status": CampaignStatus.COMPLETED,
            "total_recipients": SAMPLE_RECIPIENTS,
        },
    )
    for i in range(SAMPLE_RECIPIENTS):
        email = f"user{i}@example.com"
        sent_at = now - dt.timedelta(minutes=SAMPLE_RECIPIENTS - i)
        store.record_event(SAMPLE_CAMPAIGN_ID, EventType.SENT, email, sent_at)
        if i % 3 == 0:
            store.record_event(
                SAMPLE_CAMPAIGN_ID,
                EventType.OPENED,
                email,
                sent_at + dt.timedelta(seconds=30),
                {"userAgent": "Email Client"},
            )
        if i % 10 == 0:
            store.record_event(
                SAMPLE_CAMPAIGN_ID,
                EventType.CLICKED,
                email,
                sent_at + dt.timedelta(seconds=60),
                {"clickedUrl": SAMPLE_URL, "userAgent": "Desktop Browser"},
            )
    LOGGER.info("Seeded sample campaign %s", SAMPLE_CAMPAIGN_ID)


__all__ = ["seed_sample_campaign", "SAMPLE_CAMPAIGN_ID"]
