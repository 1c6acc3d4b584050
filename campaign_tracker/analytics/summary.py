"""Headline metrics for every campaign at once.

The listing endpoint needs a handful of numbers per campaign.  Instead of
building a full :class:`~campaign_tracker.analytics.stats.CampaignStats`
report per campaign, all event logs are stacked into one Polars frame and
aggregated in a single group-by.  Semantics match
:func:`~campaign_tracker.analytics.stats.compute_campaign_stats`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

import polars as pl

from campaign_tracker.tracking.models import Campaign, EmailEvent

SUMMARY_COLUMNS = ["sent", "delivered", "opened", "clicked", "openRate", "clickRate"]

_EVENT_SCHEMA = {"campaign_id": pl.Utf8, "event_type": pl.Utf8, "email": pl.Utf8}


def _events_frame(events: Mapping[str, Sequence[EmailEvent]]) -> pl.DataFrame:
    rows = [
        (cid, e.event_type.value, e.email)
        for cid, log in events.items()
        for e in log
    ]
    if not rows:
        return pl.DataFrame(schema=_EVENT_SCHEMA)
    return pl.DataFrame(rows, schema=_EVENT_SCHEMA, orient="row")


def _rate_expr(numerator: str, denominator: str) -> pl.Expr:
    pct = (pl.col(numerator) / pl.col(denominator) * 100).clip(0.0, 100.0)
    return (
        pl.when(pl.col(denominator) > 0)
        .then(pct.round(2, mode="half_away_from_zero"))
        .otherwise(0.0)
    )


def summary_frame(
    campaigns: Sequence[Campaign],
    events: Mapping[str, Sequence[EmailEvent]],
    *,
    assume_delivered: bool = True,
) -> pl.DataFrame:
    """One row per campaign, in the order of ``campaigns``."""
    base = pl.DataFrame(
        {
            "campaign_id": [c.campaign_id for c in campaigns],
            "position": list(range(len(campaigns))),
        },
        schema={"campaign_id": pl.Utf8, "position": pl.Int64},
    )
    kind = pl.col("event_type")
    counts = _events_frame(events).group_by("campaign_id").agg(
        (kind == "sent").sum().cast(pl.Int64).alias("sent"),
        (kind == "delivered").sum().cast(pl.Int64).alias("delivered_raw"),
        (kind == "opened").sum().cast(pl.Int64).alias("opened"),
        (kind == "clicked").sum().cast(pl.Int64).alias("clicked"),
        pl.col("email").filter(kind == "opened").n_unique()
        .cast(pl.Int64).alias("unique_opens"),
        pl.col("email").filter(kind == "clicked").n_unique()
        .cast(pl.Int64).alias("unique_clicks"),
    )
    count_cols = [
        "sent", "delivered_raw", "opened", "clicked",
        "unique_opens", "unique_clicks",
    ]
    out = (
        base.join(counts, on="campaign_id", how="left")
        .with_columns([pl.col(c).fill_null(0) for c in count_cols])
        .sort("position")
    )
    if assume_delivered:
        delivered = (
            pl.when(pl.col("delivered_raw") > 0)
            .then(pl.col("delivered_raw"))
            .otherwise(pl.col("sent"))
        )
    else:
        delivered = pl.col("delivered_raw")
    out = out.with_columns(delivered.alias("delivered"))
    return out.with_columns(
        _rate_expr("unique_opens", "delivered").alias("openRate"),
        _rate_expr("unique_clicks", "delivered").alias("clickRate"),
    ).select(["campaign_id", *SUMMARY_COLUMNS])


def summarise_campaigns(
    campaigns: Sequence[Campaign],
    events: Mapping[str, Sequence[EmailEvent]],
    *,
    assume_delivered: bool = True,
) -> List[Dict[str, Any]]:
    """Listing entries: campaign metadata plus headline ``stats``."""
    frame = summary_frame(campaigns, events, assume_delivered=assume_delivered)
    stats_by_id = {row["campaign_id"]: row for row in frame.iter_rows(named=True)}
    listing = []
    for campaign in campaigns:
        row = stats_by_id[campaign.campaign_id]
        entry = campaign.to_dict()
        entry["stats"] = {
            "sent": int(row["sent"]),
            "delivered": int(row["delivered"]),
            "opened": int(row["opened"]),
            "clicked": int(row["clicked"]),
            "openRate": float(row["openRate"]),
            "clickRate": float(row["clickRate"]),
        }
        listing.append(entry)
    return listing


__all__ = ["summary_frame", "summarise_campaigns", "SUMMARY_COLUMNS"]
