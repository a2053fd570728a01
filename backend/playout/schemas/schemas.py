# backend/playout/schemas/schemas.py
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from playout.models.approval_models import ApprovalStatus
from playout.models.playlist_models import FALLBACK_FLIGHT_ID


def ensure_utc(value: datetime) -> datetime:
    """Players without a timezone report UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def canonical_uuid(value: str) -> str:
    """Lower-case hyphenated form; anything else is rejected with a 400."""
    try:
        return str(uuid.UUID(value))
    except ValueError:
        raise ValueError(f"not a valid UUID: {value!r}") from None


class Location(BaseModel):
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    accuracy_m: Optional[float] = None

    @property
    def is_complete(self) -> bool:
        return self.lat is not None and self.lng is not None


class PlayEventIn(BaseModel):
    """One proof-of-play record reported by a player."""

    creative_id: str
    campaign_id: str
    flight_id: Optional[str] = None
    started_at: datetime
    duration_seconds: int = Field(..., ge=0)
    play_status: str = "success"
    location: Optional[Location] = None

    @field_validator("creative_id", "campaign_id")
    @classmethod
    def ids_are_uuids(cls, value: str) -> str:
        return canonical_uuid(value)

    @field_validator("flight_id")
    @classmethod
    def fallback_plays_have_no_flight(cls, value: Optional[str]) -> Optional[str]:
        """The fallback item's sentinel flight id has no flights row; store NULL."""
        if not value:
            return None
        value = canonical_uuid(value)
        return None if value == FALLBACK_FLIGHT_ID else value

    @field_validator("started_at")
    @classmethod
    def started_at_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class PlaybackBatch(BaseModel):
    """
    Body of POST /api/player/events/playbacks.

    Older players post a single event instead of {"events": [...]};
    that shape is wrapped into a one-item batch.
    """

    events: List[PlayEventIn] = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def wrap_single_event(cls, data: Any) -> Any:
        if isinstance(data, dict) and "events" not in data and data.get("creative_id"):
            event = {
                "creative_id": data["creative_id"],
                "campaign_id": data.get("campaign_id"),
                "flight_id": data.get("flight_id"),
                "started_at": data.get("played_at") or data.get("started_at"),
                "duration_seconds": data.get("duration_seconds"),
                "play_status": data.get("status") or data.get("play_status") or "success",
                "location": data.get("location"),
            }
            return {"events": [event]}
        return data


class HeartbeatMetrics(BaseModel):
    storage_free_mb: Optional[int] = None
    cpu_usage: Optional[float] = None
    network_type: Optional[str] = None
    signal_strength: Optional[int] = None


class HeartbeatIn(BaseModel):
    """Body of POST /api/player/heartbeat."""

    timestamp: datetime
    status: str
    software_version: Optional[str] = None
    location: Optional[Location] = None
    metrics: Optional[HeartbeatMetrics] = None

    @field_validator("timestamp")
    @classmethod
    def timestamp_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class RegisterPlayerIn(BaseModel):
    screen_id: str
    software_version: Optional[str] = None


class ApprovalUpdateIn(BaseModel):
    """Body of a compliance officer's approval decision."""

    status: ApprovalStatus
    approval_code: Optional[str] = None
    approved_by_user_id: Optional[str] = None
    rejected_reason: Optional[str] = None
