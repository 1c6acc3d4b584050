"""Runtime configuration for the tracking service.

Settings are read from environment variables once at bootstrap and frozen
into :class:`TrackerSettings`.  Every variable is optional:

* ``CAMPAIGN_TRACKER_MAX_EVENTS`` – events kept per campaign (10000).
* ``CAMPAIGN_TRACKER_MAX_CAMPAIGNS`` – campaign ids kept in memory (1000).
* ``CAMPAIGN_TRACKER_RECENT_EVENTS`` – events returned with a stats
  report (100).
* ``CAMPAIGN_TRACKER_TOP_LINKS`` – length of the top clicked links list (10).
* ``CAMPAIGN_TRACKER_ASSUME_DELIVERED`` – when true, a campaign without
  ``delivered`` events is assumed fully delivered (true).
* ``CAMPAIGN_TRACKER_SEED_SAMPLE`` – seed a demonstration campaign (false).
* ``CAMPAIGN_TRACKER_LOG_LEVEL`` – root logging level (INFO).
* ``CAMPAIGN_TRACKER_HOST`` / ``CAMPAIGN_TRACKER_PORT`` – bind address for
  the standalone server (``0.0.0.0:8000``).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class TrackerSettings:
    """Tunable limits and policies of the tracking service."""

    max_events_per_campaign: int = 10_000
    max_campaigns: int = 1_000
    recent_events_limit: int = 100
    top_links_limit: int = 10
    assume_delivered: bool = True
    seed_sample_data: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _read_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in _TRUTHY


def load_settings(env: Optional[Mapping[str, str]] = None) -> TrackerSettings:
    """Build :class:`TrackerSettings` from ``env`` (``os.environ`` by default)."""
    env = os.environ if env is None else env
    defaults = TrackerSettings()
    return TrackerSettings(
        max_events_per_campaign=_read_int(
            env, "CAMPAIGN_TRACKER_MAX_EVENTS", defaults.max_events_per_campaign
        ),
        max_campaigns=_read_int(
            env, "CAMPAIGN_TRACKER_MAX_CAMPAIGNS", defaults.max_campaigns
        ),
        recent_events_limit=_read_int(
            env, "CAMPAIGN_TRACKER_RECENT_EVENTS", defaults.recent_events_limit
        ),
        top_links_limit=_read_int(
            env, "CAMPAIGN_TRACKER_TOP_LINKS", defaults.top_links_limit
        ),
        assume_delivered=_read_bool(
            env, "CAMPAIGN_TRACKER_ASSUME_DELIVERED", defaults.assume_delivered
        ),
        seed_sample_data=_read_bool(
            env, "CAMPAIGN_TRACKER_SEED_SAMPLE", defaults.seed_sample_data
        ),
        log_level=(
            env.get("CAMPAIGN_TRACKER_LOG_LEVEL", "").strip().upper()
            or defaults.log_level
        ),
        host=env.get("CAMPAIGN_TRACKER_HOST", "").strip() or defaults.host,
        port=_read_int(env, "CAMPAIGN_TRACKER_PORT", defaults.port),
    )


def configure_logging(settings: TrackerSettings) -> None:
    """Apply the configured level to the root logger."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger().setLevel(settings.log_level)


__all__ = ["TrackerSettings", "load_settings", "configure_logging"]
