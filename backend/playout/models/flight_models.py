# backend/playout/models/flight_models.py

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class FlightStatus(str, Enum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class TargetType(str, Enum):
    SCREEN = "screen"
    SCREEN_GROUP = "screen_group"


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


def normalize_weight(weight: Optional[int]) -> int:
    """Missing weight counts as 1, negative weight as 0."""
    if weight is None:
        return 1
    return max(0, int(weight))


class Flight(BaseModel):
    """
    A scheduled, time-boxed unit of campaign delivery.
    The window is half-open: [start_datetime, end_datetime).
    """

    id: str
    campaign_id: str
    start_datetime: datetime
    end_datetime: datetime
    target_type: TargetType
    target_id: str
    status: FlightStatus = FlightStatus.SCHEDULED


class ActiveFlight(BaseModel):
    """(flight id, campaign id) pair returned by flight targeting."""

    id: str
    campaign_id: str


class FlightCreativeCandidate(BaseModel):
    """
    A creative attached to an active flight, joined with the
    approval it has (if any) for the screen's region.
    """

    flight_id: str
    campaign_id: str
    creative_id: str
    file_url: str
    duration_seconds: int
    weight: Optional[int] = 1

    approval_status: Optional[str] = None
    approval_code: Optional[str] = None


class FlightAllocation(BaseModel):
    """How much weight one flight contributes to a creative."""

    flight_id: str
    weight: int


class EligibleCreative(BaseModel):
    """
    A creative that passed the compliance gate, with the weight
    contributed by every active flight that references it.
    """

    creative_id: str
    campaign_id: str
    file_url: str
    duration_seconds: int
    allocations: List[FlightAllocation] = []

    @property
    def weight(self) -> int:
        return sum(a.weight for a in self.allocations)
