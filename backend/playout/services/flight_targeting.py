# backend/playout/services/flight_targeting.py

from datetime import datetime
from typing import Iterable, List, Tuple

from playout.db.store import PlayoutStore
from playout.errors import ScreenNotFoundError
from playout.models.flight_models import ActiveFlight, Flight, FlightStatus, TargetType
from playout.models.screen_models import Screen


def flight_targets_screen(
    flight: Flight,
    screen_id: str,
    group_ids: Iterable[str],
    now: datetime,
) -> bool:
    """
    A flight is playable on a screen when:
    - it is active
    - now is inside [start_datetime, end_datetime)
    - it targets the screen itself or a group the screen belongs to
    """
    if flight.status != FlightStatus.ACTIVE:
        return False

    if not (flight.start_datetime <= now < flight.end_datetime):
        return False

    if flight.target_type == TargetType.SCREEN:
        return flight.target_id == screen_id

    return flight.target_id in set(group_ids)


def resolve_active_flights(
    store: PlayoutStore,
    screen_id: str,
    now: datetime,
) -> Tuple[Screen, List[ActiveFlight]]:
    """
    Looks up the screen and the flights currently targeting it.

    Runs on the caller's transaction, so the flights seen here are the same
    ones the rest of the playlist resolution works with.
    """
    screen = store.get_screen(screen_id)
    if screen is None:
        raise ScreenNotFoundError(f"Screen not found: {screen_id}")

    flights = store.find_active_flights(screen.id, now)
    return screen, flights
