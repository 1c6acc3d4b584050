"""Web server for campaign tracking and statistics.

This module exposes a typed API using FastAPI.  Opens are recorded through a
tracking pixel, clicks through a redirect, and any other event through an
explicit JSON ingestion call.  Statistics are recomputed from the event log
on every request.  The server can be run standalone::

    uvicorn campaign_tracker.tracking.server:create_app --factory

or embedded inside the Streamlit dashboard through :func:`create_app`.

All routes live under ``/api/track-email``.  Handlers find the store on
``app.state`` so every application instance owns its own state.
"""

from __future__ import annotations

import base64
import datetime as dt
import functools
import logging
from typing import Any, Callable, Dict, Optional, TypeVar

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict, Field

from campaign_tracker.analytics.stats import compute_campaign_stats
from campaign_tracker.analytics.summary import summarise_campaigns
from campaign_tracker.config import (
    TrackerSettings,
    configure_logging,
    load_settings,
)
from campaign_tracker.sample_data import seed_sample_campaign
from campaign_tracker.tracking.errors import (
    TrackingError,
    TrackingValidationError,
)
from campaign_tracker.tracking.models import (
    CampaignStatus,
    EventType,
)
from campaign_tracker.tracking.store import CampaignEventStore

LOGGER = logging.getLogger(__name__)

# 1×1 transparent PNG
PIXEL_PNG: bytes = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

_Handler = TypeVar("_Handler", bound=Callable[..., Any])


class TrackEventRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    campaign_id: Optional[str] = Field(default=None, alias="campaignId")
    event_type: Optional[str] = Field(default=None, alias="eventType")
    email: Optional[str] = None
    timestamp: Optional[dt.datetime] = None
    metadata: Optional[Dict[str, Any]] = None


class CampaignFields(BaseModel):
    """Writable campaign fields; anything else is rejected."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    campaign_name: Optional[str] = Field(default=None, alias="campaignName")
    created_at: Optional[dt.datetime] = Field(default=None, alias="createdAt")
    status: Optional[CampaignStatus] = None
    total_recipients: Optional[int] = Field(
        default=None, alias="totalRecipients", ge=0
    )


class CreateCampaignRequest(CampaignFields):
    campaign_id: Optional[str] = Field(default=None, alias="campaignId")


class UpdateCampaignRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    campaign_id: Optional[str] = Field(default=None, alias="campaignId")
    updates: CampaignFields = Field(default_factory=CampaignFields)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _fails_with(message: str) -> Callable[[_Handler], _Handler]:
    """Turn unexpected exceptions in a handler into a generic 500."""

    def decorator(handler: _Handler) -> _Handler:
        @functools.wraps(handler)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return handler(*args, **kwargs)
            except TrackingError:
                raise
            except Exception:
                LOGGER.exception("%s in %s", message, handler.__name__)
                return _error(message, 500)

        return wrapper  # type: ignore[return-value]

    return decorator


def get_store(request: Request) -> CampaignEventStore:
    return request.app.state.store


def get_settings(request: Request) -> TrackerSettings:
    return request.app.state.settings


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


router = APIRouter(prefix="/api/track-email")


@router.get("/open/{campaign_id}", response_class=Response,
            summary="Tracking pixel")
def track_open(
    request: Request,
    campaign_id: str,
    email: Optional[str] = None,
    store: CampaignEventStore = Depends(get_store),
) -> Response:
    """Record an 'opened' event and return a 1×1 PNG that is never cached.

    The image is served even when recording fails so that the email still
    renders.
    """
    if not email or not campaign_id:
        return PlainTextResponse("Invalid parameters", status_code=400)
    try:
        store.record_event(
            campaign_id,
            EventType.OPENED,
            email,
            metadata={"userAgent": "Email Client", "ip": _client_ip(request)},
        )
    except Exception:
        LOGGER.exception("Failed to record open for %s", campaign_id)
    return Response(content=PIXEL_PNG, media_type="image/png",
                    headers=NO_CACHE_HEADERS)


@router.head("/open/{campaign_id}", include_in_schema=False)
def track_open_head(campaign_id: str) -> Response:
    # Proxies validate the image with HEAD; no event is recorded.
    headers = dict(NO_CACHE_HEADERS, **{"Content-Type": "image/png"})
    return Response(status_code=200, headers=headers)


@router.get("/click/{campaign_id}", response_class=RedirectResponse,
            summary="Record click and redirect")
def track_click(
    campaign_id: str,
    email: Optional[str] = None,
    url: Optional[str] = None,
    store: CampaignEventStore = Depends(get_store),
) -> RedirectResponse:
    """Record a 'clicked' event and redirect to the target URL."""
    if not email or not url or not campaign_id:
        return RedirectResponse("/")
    try:
        store.record_event(
            campaign_id,
            EventType.CLICKED,
            email,
            metadata={"clickedUrl": url, "userAgent": "Browser"},
        )
    except Exception:
        LOGGER.exception("Failed to record click for %s", campaign_id)
    return RedirectResponse(url)


@router.post("", summary="Record a tracking event")
@_fails_with("Failed to record tracking event")
def record_event(
    payload: TrackEventRequest,
    store: CampaignEventStore = Depends(get_store),
) -> Dict[str, Any]:
    if not payload.campaign_id or not payload.event_type or not payload.email:
        raise TrackingValidationError("Missing required tracking parameters")
    event = store.record_event(
        payload.campaign_id,
        payload.event_type,
        payload.email,
        payload.timestamp,
        payload.metadata,
    )
    return {
        "success": True,
        "message": "Tracking event recorded successfully",
        "eventId": event.id,
    }


@router.post("/campaigns", summary="Create or update a campaign")
@_fails_with("Failed to update campaign information")
def upsert_campaign(
    payload: CreateCampaignRequest,
    store: CampaignEventStore = Depends(get_store),
) -> Dict[str, Any]:
    if not payload.campaign_id:
        raise TrackingValidationError("Campaign ID is required")
    fields = payload.model_dump(exclude_unset=True, exclude={"campaign_id"})
    campaign = store.upsert_campaign(payload.campaign_id, fields)
    return {"success": True, "campaign": campaign.to_dict()}


@router.put("", summary="Update campaign information")
@_fails_with("Failed to update campaign information")
def update_campaign(
    payload: UpdateCampaignRequest,
    store: CampaignEventStore = Depends(get_store),
) -> Dict[str, Any]:
    if not payload.campaign_id:
        raise TrackingValidationError("Campaign ID is required")
    store.update_campaign(
        payload.campaign_id, payload.updates.model_dump(exclude_unset=True)
    )
    return {
        "success": True,
        "message": "Campaign information updated successfully",
    }


@router.get("", summary="List campaigns")
@_fails_with("Failed to get tracking data")
def list_campaigns(
    store: CampaignEventStore = Depends(get_store),
    settings: TrackerSettings = Depends(get_settings),
) -> Dict[str, Any]:
    campaigns = store.list_campaigns()
    listing = summarise_campaigns(
        campaigns,
        store.all_events(),
        assume_delivered=settings.assume_delivered,
    )
    return {
        "success": True,
        "campaigns": listing,
        "totalCampaigns": len(listing),
    }


@router.get("/{campaign_id}", summary="Campaign statistics")
@_fails_with("Failed to get tracking data")
def campaign_stats(
    campaign_id: str,
    store: CampaignEventStore = Depends(get_store),
    settings: TrackerSettings = Depends(get_settings),
) -> Dict[str, Any]:
    campaign = store.get_campaign(campaign_id)
    events = store.get_events(campaign_id)
    stats = compute_campaign_stats(
        events,
        campaign,
        assume_delivered=settings.assume_delivered,
        top_links_limit=settings.top_links_limit,
    )
    recent = events[-settings.recent_events_limit:]
    return {
        "success": True,
        "campaignId": campaign_id,
        "campaign": campaign.to_dict(),
        "stats": stats.to_dict(),
        "events": [e.to_dict() for e in recent],
    }


async def _tracking_error_handler(
    request: Request, exc: TrackingError
) -> JSONResponse:
    LOGGER.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return _error(str(exc), exc.status_code)


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    LOGGER.info("%s %s invalid body", request.method, request.url.path)
    return JSONResponse(
        {
            "error": "Invalid tracking request",
            "detail": jsonable_encoder(exc.errors()),
        },
        status_code=400,
    )


def create_app(
    store: Optional[CampaignEventStore] = None,
    settings: Optional[TrackerSettings] = None,
) -> FastAPI:
    """Build a FastAPI application bound to ``store``.

    When no store is given a fresh one is created from ``settings`` (read
    from the environment by default) and seeded with the sample campaign if
    configured.
    """
    settings = settings or load_settings()
    if store is None:
        store = CampaignEventStore(
            max_events=settings.max_events_per_campaign,
            max_campaigns=settings.max_campaigns,
        )
        if settings.seed_sample_data:
            seed_sample_campaign(store)

    app = FastAPI(title="Campaign Tracking API")
    app.state.store = store
    app.state.settings = settings
    app.include_router(router)
    app.add_exception_handler(TrackingError, _tracking_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    return app


def run() -> None:
    """Serve a new application with uvicorn using environment settings."""
    settings = load_settings()
    configure_logging(settings)
    uvicorn.run(
        create_app(settings=settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":  # pragma: no cover - manual invocation
    run()
