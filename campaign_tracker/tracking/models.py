"""Record types held by the campaign event store.

Internally every timestamp is a timezone-aware UTC :class:`datetime`.  On
the wire they travel as ISO-8601 strings with millisecond precision and a
``Z`` suffix, e.g. ``2025-01-01T10:00:00.000Z``.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


class EventType(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    OPENED = "opened"
    CLICKED = "clicked"
    BOUNCED = "bounced"
    UNSUBSCRIBED = "unsubscribed"


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    SENDING = "sending"
    COMPLETED = "completed"


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def to_utc(value: dt.datetime) -> dt.datetime:
    """Return ``value`` as an aware UTC datetime; naive values are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def format_timestamp(value: dt.datetime) -> str:
    return to_utc(value).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


@dataclass(frozen=True)
class EmailEvent:
    """One recipient interaction with one campaign.  Never mutated."""

    id: str
    campaign_id: str
    event_type: EventType
    email: str
    timestamp: dt.datetime
    recorded_at: dt.datetime
    metadata: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def user_agent(self) -> Optional[str]:
        return self.metadata.get("userAgent")

    @property
    def clicked_url(self) -> Optional[str]:
        return self.metadata.get("clickedUrl")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "campaignId": self.campaign_id,
            "eventType": self.event_type.value,
            "email": self.email,
            "timestamp": format_timestamp(self.timestamp),
            "recordedAt": format_timestamp(self.recorded_at),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class Campaign:
    """Metadata for a named batch of outbound emails."""

    campaign_id: str
    campaign_name: str
    created_at: dt.datetime
    status: CampaignStatus = CampaignStatus.DRAFT
    total_recipients: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "campaignId": self.campaign_id,
            "campaignName": self.campaign_name,
            "createdAt": format_timestamp(self.created_at),
            "status": self.status.value,
            "totalRecipients": self.total_recipients,
        }


__all__ = [
    "EventType",
    "CampaignStatus",
    "EmailEvent",
    "Campaign",
    "utcnow",
    "to_utc",
    "format_timestamp",
]
