import datetime as dt

from campaign_tracker.analytics.stats import compute_campaign_stats
from campaign_tracker.dashboard.stats_view import headline_metrics, timeline_frame

T0 = dt.datetime(2025, 1, 1, 10, 0, tzinfo=dt.timezone.utc)


def test_timeline_frame_is_long_format(store) -> None:
    store.record_event("c1", "sent", "a@x.com", T0)
    store.record_event("c1", "opened", "a@x.com", T0 + dt.timedelta(hours=1))
    frame = timeline_frame(compute_campaign_stats(store.get_events("c1")))

    assert list(frame.columns) == ["time", "series", "count"]
    assert len(frame) == 6
    opened = frame[frame["series"] == "opened"].set_index("time")["count"]
    assert opened.tolist() == [0, 1]


def test_timeline_frame_empty() -> None:
    assert timeline_frame(compute_campaign_stats([])).empty


def test_headline_metrics_formats_rates(store) -> None:
    for i in range(3):
        store.record_event("c1", "sent", f"u{i}@x.com", T0)
    store.record_event("c1", "opened", "u0@x.com", T0)
    metrics = headline_metrics(compute_campaign_stats(store.get_events("c1")))

    assert metrics["Sent"] == "3"
    assert metrics["Unique opens"] == "1 (33.33%)"
