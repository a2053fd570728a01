# backend/playout/services/geofence.py

from datetime import datetime
from math import asin, cos, radians, sin, sqrt
from typing import Optional

from playout.config import GEOFENCE_MIN_DISTANCE_METERS, GEOFENCE_MIN_INTERVAL_SECONDS
from playout.db.store import PlayoutStore
from playout.models.screen_models import LocationPoint

EARTH_RADIUS_METERS = 6_371_000.0


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two WGS84 points, in meters."""
    phi1, phi2 = radians(lat1), radians(lat2)
    d_phi = radians(lat2 - lat1)
    d_lambda = radians(lng2 - lng1)

    a = sin(d_phi / 2) ** 2 + cos(phi1) * cos(phi2) * sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * asin(min(1.0, sqrt(a)))


class GeofencedSampler:
    """
    Time/distance hysteresis for the location trail of moving screens.

    A new observation is kept when there is no previous point, when at least
    `min_interval_seconds` passed since the last kept point, or when the
    screen moved more than `min_distance_meters` from it.
    """

    def __init__(
        self,
        min_interval_seconds: float = GEOFENCE_MIN_INTERVAL_SECONDS,
        min_distance_meters: float = GEOFENCE_MIN_DISTANCE_METERS,
    ) -> None:
        self.min_interval_seconds = min_interval_seconds
        self.min_distance_meters = min_distance_meters

    def should_sample(
        self,
        last_point: Optional[LocationPoint],
        observed_at: datetime,
        lat: float,
        lng: float,
    ) -> bool:
        if last_point is None:
            return True

        elapsed = (observed_at - last_point.recorded_at).total_seconds()
        if elapsed >= self.min_interval_seconds:
            return True

        distance = haversine_meters(last_point.latitude, last_point.longitude, lat, lng)
        return distance > self.min_distance_meters

    def should_persist(
        self,
        store: PlayoutStore,
        screen_id: str,
        observed_at: datetime,
        lat: float,
        lng: float,
    ) -> bool:
        last_point = store.get_latest_location(screen_id)
        return self.should_sample(last_point, observed_at, lat, lng)
