import datetime as dt

import pytest

from campaign_tracker.analytics.stats import compute_campaign_stats
from campaign_tracker.analytics.summary import (
    SUMMARY_COLUMNS,
    summarise_campaigns,
    summary_frame,
)

T0 = dt.datetime(2025, 2, 1, 8, 0, tzinfo=dt.timezone.utc)


def _populate(store) -> None:
    store.upsert_campaign("spring", {"campaign_name": "Spring listings", "total_recipients": 6})
    store.upsert_campaign("confirmed", {"campaign_name": "Confirmed deliveries"})
    store.upsert_campaign("empty", {"campaign_name": "Nothing yet"})
    for i in range(6):
        store.record_event("spring", "sent", f"u{i}@x.com", T0)
    for email in ("u0@x.com", "u0@x.com", "u1@x.com"):
        store.record_event("spring", "opened", email, T0)
    store.record_event("spring", "clicked", "u1@x.com", T0, {"clickedUrl": "https://x.com"})
    for i in range(4):
        store.record_event("confirmed", "sent", f"v{i}@x.com", T0)
    for i in range(3):
        store.record_event("confirmed", "delivered", f"v{i}@x.com", T0)
    store.record_event("confirmed", "opened", "v0@x.com", T0)
    store.record_event("orphan", "sent", "w@x.com", T0)


@pytest.mark.parametrize("assume_delivered", [True, False])
def test_summary_matches_full_report(store, assume_delivered: bool) -> None:
    _populate(store)
    campaigns = store.list_campaigns()
    listing = summarise_campaigns(
        campaigns, store.all_events(), assume_delivered=assume_delivered
    )

    assert [entry["campaignId"] for entry in listing] == ["spring", "confirmed", "empty"]
    for entry, campaign in zip(listing, campaigns):
        full = compute_campaign_stats(
            store.get_events(campaign.campaign_id),
            campaign,
            assume_delivered=assume_delivered,
        ).to_dict()
        assert entry["stats"] == {key: full[key] for key in SUMMARY_COLUMNS}


def test_summary_entries_carry_campaign_metadata(store) -> None:
    _populate(store)
    entry = summarise_campaigns(store.list_campaigns(), store.all_events())[0]

    assert entry["campaignName"] == "Spring listings"
    assert entry["status"] == "draft"
    assert entry["totalRecipients"] == 6
    assert entry["stats"] == {
        "sent": 6,
        "delivered": 6,
        "opened": 3,
        "clicked": 1,
        "openRate": 33.33,
        "clickRate": 16.67,
    }


def test_summary_frame_without_events(store) -> None:
    store.upsert_campaign("c1")
    frame = summary_frame(store.list_campaigns(), {})

    assert frame.height == 1
    assert frame.row(0, named=True) == {
        "campaign_id": "c1",
        "sent": 0,
        "delivered": 0,
        "opened": 0,
        "clicked": 0,
        "openRate": 0.0,
        "clickRate": 0.0,
    }


def test_summary_of_no_campaigns_is_empty(store) -> None:
    store.record_event("orphan", "sent", "a@x.com", T0)
    assert summarise_campaigns([], store.all_events()) == []


def test_summary_rounds_halves_up_like_full_report(store) -> None:
    store.upsert_campaign("large")
    for i in range(800):
        store.record_event("large", "sent", f"u{i}@x.com", T0)
    store.record_event("large", "opened", "u0@x.com", T0)
    for i in range(3):
        store.record_event("large", "clicked", f"u{i}@x.com", T0)
    campaigns = store.list_campaigns()
    entry = summarise_campaigns(campaigns, store.all_events())[0]
    full = compute_campaign_stats(store.get_events("large"), campaigns[0])

    # 0.125 and 0.375 are exact halves.
    assert entry["stats"]["openRate"] == full.open_rate == 0.13
    assert entry["stats"]["clickRate"] == full.click_rate == 0.38
