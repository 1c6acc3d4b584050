import datetime as dt

import pytest

from campaign_tracker.tracking.errors import (
    CampaignNotFoundError,
    TrackingValidationError,
)
from campaign_tracker.tracking.models import CampaignStatus, EventType
from campaign_tracker.tracking.store import CampaignEventStore


def test_record_event_assigns_id_and_recorded_at(store, clock) -> None:
    ts = dt.datetime(2025, 1, 1, 12, 30, tzinfo=dt.timezone.utc)
    event = store.record_event("c1", "sent", "a@x.com", ts, {"ip": "1.2.3.4"})

    assert event.id.startswith("event_")
    assert event.event_type is EventType.SENT
    assert event.timestamp == ts
    assert event.recorded_at == clock.calls[-1]
    assert event.metadata == {"ip": "1.2.3.4"}
    assert store.get_events("c1") == [event]


def test_record_event_defaults_timestamp_to_now(store, clock) -> None:
    event = store.record_event("c1", EventType.OPENED, "a@x.com")
    assert event.timestamp == event.recorded_at == clock.calls[-1]


def test_naive_timestamp_is_treated_as_utc(store) -> None:
    event = store.record_event("c1", "sent", "a@x.com", dt.datetime(2025, 1, 1, 8))
    assert event.timestamp == dt.datetime(2025, 1, 1, 8, tzinfo=dt.timezone.utc)


def test_event_ids_are_unique(store) -> None:
    ids = {store.record_event("c1", "sent", f"u{i}@x.com").id for i in range(50)}
    assert len(ids) == 50


def test_events_are_kept_in_insertion_order(store) -> None:
    late = dt.datetime(2025, 1, 2, tzinfo=dt.timezone.utc)
    early = dt.datetime(2025, 1, 1, tzinfo=dt.timezone.utc)
    store.record_event("c1", "sent", "a@x.com", late)
    store.record_event("c1", "sent", "b@x.com", early)
    assert [e.email for e in store.get_events("c1")] == ["a@x.com", "b@x.com"]


def test_unknown_campaign_has_no_events(store) -> None:
    assert store.get_events("missing") == []


def test_unknown_event_type_is_rejected(store) -> None:
    with pytest.raises(TrackingValidationError):
        store.record_event("c1", "forwarded", "a@x.com")
    assert store.get_events("c1") == []


def test_log_is_capped_at_ten_thousand_oldest_first(store) -> None:
    total = 10_005
    for i in range(total):
        store.record_event("c1", "sent", f"user{i}@x.com")

    events = store.get_events("c1")
    assert len(events) == 10_000
    assert events[0].email == "user5@x.com"
    assert events[-1].email == f"user{total - 1}@x.com"


def test_small_cap_keeps_most_recent_in_order(clock) -> None:
    store = CampaignEventStore(max_events=3, clock=clock)
    for i in range(7):
        store.record_event("c1", "opened", f"u{i}@x.com")
        assert len(store.get_events("c1")) == min(i + 1, 3)
    assert [e.email for e in store.get_events("c1")] == [
        "u4@x.com",
        "u5@x.com",
        "u6@x.com",
    ]


def test_upsert_creates_with_defaults(store, clock) -> None:
    campaign = store.upsert_campaign("c1")
    assert campaign.campaign_name == "c1"
    assert campaign.status is CampaignStatus.DRAFT
    assert campaign.total_recipients == 0
    assert campaign.created_at == clock.calls[-1]


def test_upsert_replaces_only_given_fields(store) -> None:
    store.upsert_campaign("c1", {"campaign_name": "Open house", "total_recipients": 40})
    updated = store.upsert_campaign("c1", {"status": "sending"})

    assert updated.campaign_name == "Open house"
    assert updated.total_recipients == 40
    assert updated.status is CampaignStatus.SENDING
    assert store.get_campaign("c1") == updated


def test_update_requires_existing_campaign(store) -> None:
    with pytest.raises(CampaignNotFoundError):
        store.update_campaign("c1", {"status": "completed"})


def test_invalid_campaign_fields_are_rejected(store) -> None:
    store.upsert_campaign("c1")
    with pytest.raises(TrackingValidationError):
        store.update_campaign("c1", {"status": "archived"})
    with pytest.raises(TrackingValidationError):
        store.update_campaign("c1", {"total_recipients": -1})
    with pytest.raises(TrackingValidationError):
        store.update_campaign("c1", {"owner": "bob"})


def test_get_campaign_unknown_raises(store) -> None:
    with pytest.raises(CampaignNotFoundError):
        store.get_campaign("nope")


def test_list_campaigns_in_creation_order(store) -> None:
    store.upsert_campaign("b")
    store.upsert_campaign("a")
    store.upsert_campaign("b", {"status": "completed"})
    assert [c.campaign_id for c in store.list_campaigns()] == ["b", "a"]


def test_orphan_events_are_tolerated(store) -> None:
    store.record_event("ghost", "sent", "a@x.com")
    assert len(store.get_events("ghost")) == 1
    with pytest.raises(CampaignNotFoundError):
        store.get_campaign("ghost")


def test_campaign_limit_evicts_oldest_with_its_events(clock) -> None:
    store = CampaignEventStore(max_campaigns=2, clock=clock)
    store.upsert_campaign("c1")
    store.record_event("c1", "sent", "a@x.com")
    store.upsert_campaign("c2")
    store.record_event("c3", "sent", "b@x.com")

    assert store.get_events("c1") == []
    with pytest.raises(CampaignNotFoundError):
        store.get_campaign("c1")
    assert [c.campaign_id for c in store.list_campaigns()] == ["c2"]
    assert len(store.get_events("c3")) == 1


def test_campaign_limit_evicts_orphan_logs_before_campaigns(clock) -> None:
    store = CampaignEventStore(max_campaigns=3, clock=clock)
    store.upsert_campaign("real")
    store.record_event("real", "sent", "a@x.com")
    for i in range(5):
        store.record_event(f"ghost{i}", "opened", "x@y.com")

    assert store.get_campaign("real").campaign_id == "real"
    assert len(store.get_events("real")) == 1
    assert store.get_events("ghost0") == []
    assert store.get_events("ghost2") == []
    assert len(store.get_events("ghost3")) == 1
    assert len(store.get_events("ghost4")) == 1


def test_orphan_log_promoted_to_campaign_is_protected(clock) -> None:
    store = CampaignEventStore(max_campaigns=2, clock=clock)
    store.record_event("c1", "sent", "a@x.com")
    store.record_event("ghost", "opened", "x@y.com")
    store.upsert_campaign("c1", {"campaign_name": "Late metadata"})
    store.upsert_campaign("c2")

    assert store.get_events("ghost") == []
    assert len(store.get_events("c1")) == 1
    assert [c.campaign_id for c in store.list_campaigns()] == ["c1", "c2"]

def test_clear_drops_everything(store) -> None:
    store.upsert_campaign("c1")
    store.record_event("c1", "sent", "a@x.com")
    store.clear()
    assert store.list_campaigns() == []
    assert store.get_events("c1") == []
