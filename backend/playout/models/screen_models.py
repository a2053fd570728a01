# backend/playout/models/screen_models.py

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ScreenClassification(str, Enum):
    VEHICLE = "vehicle"
    BILLBOARD = "billboard"
    INDOOR = "indoor"


class Screen(BaseModel):
    """
    A physical screen as the playout engine sees it:
    where it is (region, city), what kind of screen it is
    and its last known position.
    """

    id: str
    region_code: str
    city: str
    classification: ScreenClassification = ScreenClassification.VEHICLE
    publisher_org_id: Optional[str] = None

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    last_seen_at: Optional[datetime] = None

    @property
    def is_vehicle(self) -> bool:
        return self.classification == ScreenClassification.VEHICLE


class Region(BaseModel):
    """
    Regulatory reference data for a region (read-only for this engine).
    """

    code: str
    name: Optional[str] = None
    requires_pre_approval: bool = False
    regulator_name: Optional[str] = None


class LocationPoint(BaseModel):
    """One row of the sampled location trail of a screen."""

    recorded_at: datetime
    latitude: float
    longitude: float
