"""In-memory campaign metadata table and per-campaign event logs.

The store is an explicit object created by the process bootstrap and
handed to request handlers; nothing here is a module global.  All state is
lost when the process exits.

Each campaign's event log is a FIFO bounded by ``max_events``: once it is
full, appending drops the oldest entry.  The number of campaign ids held
across both tables is bounded by ``max_campaigns``.  A new id beyond that
evicts the oldest event log that has no campaign record; only when every
known id has a record is the oldest campaign (by first appearance) evicted
together with its log.  Pixel hits on made-up ids therefore cannot push out
real campaigns while orphan logs remain.

Request handlers run concurrently in a thread pool, so a single lock guards
every read and write.
"""

from __future__ import annotations

import datetime as dt
import logging
import threading
import uuid
from collections import OrderedDict, deque
from dataclasses import replace
from types import MappingProxyType
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Union

from campaign_tracker.tracking.errors import (
    CampaignNotFoundError,
    TrackingValidationError,
)
from campaign_tracker.tracking.models import (
    Campaign,
    CampaignStatus,
    EmailEvent,
    EventType,
    to_utc,
    utcnow,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 10_000
DEFAULT_MAX_CAMPAIGNS = 1_000

_CAMPAIGN_FIELDS = {"campaign_name", "created_at", "status", "total_recipients"}


def _generate_event_id() -> str:
    return f"event_{uuid.uuid4().hex}"


def _coerce_event_type(value: Union[str, EventType]) -> EventType:
    try:
        return EventType(value)
    except ValueError as exc:
        raise TrackingValidationError(f"Unknown event type: {value!r}") from exc


def _clean_metadata(metadata: Optional[Mapping[str, Any]]) -> Mapping[str, str]:
    if not metadata:
        return MappingProxyType({})
    return MappingProxyType(
        {str(k): str(v) for k, v in metadata.items() if v is not None}
    )


def _clean_campaign_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - _CAMPAIGN_FIELDS
    if unknown:
        raise TrackingValidationError(
            f"Unknown campaign fields: {sorted(unknown)}"
        )
    cleaned = {k: v for k, v in fields.items() if v is not None}
    if "status" in cleaned:
        try:
            cleaned["status"] = CampaignStatus(cleaned["status"])
        except ValueError as exc:
            raise TrackingValidationError(
                f"Unknown campaign status: {cleaned['status']!r}"
            ) from exc
    if "total_recipients" in cleaned:
        total = cleaned["total_recipients"]
        if not isinstance(total, int) or isinstance(total, bool) or total < 0:
            raise TrackingValidationError(
                "totalRecipients must be a non-negative integer"
            )
    if "created_at" in cleaned:
        cleaned["created_at"] = to_utc(cleaned["created_at"])
    return cleaned


class CampaignEventStore:
    """Process-local campaign table plus append-only event logs."""

    def __init__(
        self,
        max_events: int = DEFAULT_MAX_EVENTS,
        max_campaigns: int = DEFAULT_MAX_CAMPAIGNS,
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        if max_events < 1 or max_campaigns < 1:
            raise ValueError("max_events and max_campaigns must be positive")
        self._max_events = max_events
        self._max_campaigns = max_campaigns
        self._clock = clock
        self._lock = threading.Lock()
        self._campaigns: Dict[str, Campaign] = {}
        self._events: Dict[str, Deque[EmailEvent]] = {}
        # Every known campaign id in order of first appearance.
        self._known: "OrderedDict[str, None]" = OrderedDict()

    @property
    def max_events(self) -> int:
        return self._max_events

    def _eviction_candidate(self) -> str:
        """Oldest id without a metadata record, else the oldest id."""
        for cid in self._known:
            if cid not in self._campaigns:
                return cid
        return next(iter(self._known))

    def _touch(self, campaign_id: str) -> None:
        """Register ``campaign_id``, evicting an older id when full."""
        if campaign_id in self._known:
            return
        while len(self._known) >= self._max_campaigns:
            evicted = self._eviction_candidate()
            del self._known[evicted]
            self._campaigns.pop(evicted, None)
            dropped = self._events.pop(evicted, None)
            LOGGER.warning(
                "Campaign limit %d reached, evicted %s (%d events)",
                self._max_campaigns,
                evicted,
                len(dropped) if dropped else 0,
            )
        self._known[campaign_id] = None

    def record_event(
        self,
        campaign_id: str,
        event_type: Union[str, EventType],
        email: str,
        timestamp: Optional[dt.datetime] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> EmailEvent:
        """Append an event to the campaign's log and return it.

        The campaign does not need a metadata record.  ``timestamp`` defaults
        to the current time.
        """
        if not campaign_id or not email:
            raise TrackingValidationError("campaignId and email are required")
        kind = _coerce_event_type(event_type)
        now = self._clock()
        event = EmailEvent(
            id=_generate_event_id(),
            campaign_id=campaign_id,
            event_type=kind,
            email=email,
            timestamp=to_utc(timestamp) if timestamp is not None else now,
            recorded_at=now,
            metadata=_clean_metadata(metadata),
        )
        with self._lock:
            self._touch(campaign_id)
            log = self._events.get(campaign_id)
            if log is None:
                log = deque(maxlen=self._max_events)
                self._events[campaign_id] = log
            log.append(event)
        LOGGER.debug("Recorded %s event for %s", kind.value, campaign_id)
        return event

    def get_events(self, campaign_id: str) -> List[EmailEvent]:
        """Return a snapshot of the campaign's log in insertion order."""
        with self._lock:
            return list(self._events.get(campaign_id, ()))

    def all_events(self) -> Dict[str, List[EmailEvent]]:
        with self._lock:
            return {cid: list(log) for cid, log in self._events.items()}

    def upsert_campaign(
        self, campaign_id: str, fields: Optional[Mapping[str, Any]] = None
    ) -> Campaign:
        """Create the campaign if absent, otherwise replace the given fields."""
        if not campaign_id:
            raise TrackingValidationError("Campaign ID is required")
        cleaned = _clean_campaign_fields(fields or {})
        with self._lock:
            current = self._campaigns.get(campaign_id)
            if current is None:
                self._touch(campaign_id)
                cleaned.setdefault("campaign_name", campaign_id)
                cleaned.setdefault("created_at", self._clock())
                campaign = Campaign(campaign_id=campaign_id, **cleaned)
                LOGGER.info("Created campaign %s", campaign_id)
            else:
                campaign = replace(current, **cleaned)
            self._campaigns[campaign_id] = campaign
            return campaign

    def update_campaign(
        self, campaign_id: str, fields: Mapping[str, Any]
    ) -> Campaign:
        """Replace fields of an existing campaign."""
        if not campaign_id:
            raise TrackingValidationError("Campaign ID is required")
        cleaned = _clean_campaign_fields(fields)
        with self._lock:
            current = self._campaigns.get(campaign_id)
            if current is None:
                raise CampaignNotFoundError(campaign_id)
            campaign = replace(current, **cleaned)
            self._campaigns[campaign_id] = campaign
            return campaign

    def get_campaign(self, campaign_id: str) -> Campaign:
        with self._lock:
            campaign = self._campaigns.get(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(campaign_id)
        return campaign

    def list_campaigns(self) -> List[Campaign]:
        """Campaigns in order of first appearance."""
        with self._lock:
            return [
                self._campaigns[cid]
                for cid in self._known
                if cid in self._campaigns
            ]

    def clear(self) -> None:
        with self._lock:
            self._campaigns.clear()
            self._events.clear()
            self._known.clear()


__all__ = ["CampaignEventStore", "DEFAULT_MAX_EVENTS", "DEFAULT_MAX_CAMPAIGNS"]
