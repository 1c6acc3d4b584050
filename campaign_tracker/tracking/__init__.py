"""Event store and HTTP endpoints for email campaign tracking."""

from __future__ import annotations

from campaign_tracker.tracking.errors import (
    CampaignNotFoundError,
    TrackingError,
    TrackingValidationError,
)
from campaign_tracker.tracking.models import (
    Campaign,
    CampaignStatus,
    EmailEvent,
    EventType,
)
from campaign_tracker.tracking.store import CampaignEventStore

__all__ = [
    "Campaign",
    "CampaignEventStore",
    "CampaignNotFoundError",
    "CampaignStatus",
    "EmailEvent",
    "EventType",
    "TrackingError",
    "TrackingValidationError",
]
