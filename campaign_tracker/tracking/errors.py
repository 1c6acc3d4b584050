"""Exceptions raised by the tracking store and mapped to HTTP statuses."""

from __future__ import annotations


class TrackingError(Exception):
    """Base class for expected tracking failures."""

    status_code: int = 500


class TrackingValidationError(TrackingError):
    """A required field is missing or carries an unusable value."""

    status_code = 400


class CampaignNotFoundError(TrackingError):
    """The referenced campaign has no metadata record."""

    status_code = 404

    def __init__(self, campaign_id: str) -> None:
        super().__init__(f"Campaign does not exist: {campaign_id}")
        self.campaign_id = campaign_id


__all__ = ["TrackingError", "TrackingValidationError", "CampaignNotFoundError"]
