# backend/playout/services/telemetry_service.py

import secrets
from typing import List, Optional

from pydantic import BaseModel

from playout.db.store import PlayoutStore
from playout.db.unit_of_work import UnitOfWorkFactory, unit_of_work
from playout.errors import PlayerNotFoundError, ValidationError
from playout.logging_config import get_logger
from playout.models.player_models import AuthenticatedPlayer
from playout.models.screen_models import LocationPoint
from playout.schemas.schemas import HeartbeatIn, PlayEventIn
from playout.services.geofence import GeofencedSampler

logger = get_logger(__name__)


class HeartbeatOutcome(BaseModel):
    position_updated: bool = False
    location_sampled: bool = False


def new_history_id() -> str:
    return f"slh_{secrets.token_urlsafe(16)}"


def _current_screen_id(store: PlayoutStore, player_id: str) -> str:
    player = store.get_player(player_id)
    if player is None:
        raise PlayerNotFoundError(f"Player not found: {player_id}")
    return player.screen_id


class TelemetryService:
    """
    Ingests what players report back: proof-of-play batches and heartbeats.
    Each call is one unit of work, all or nothing.
    """

    def __init__(
        self,
        uow: UnitOfWorkFactory = unit_of_work,
        sampler: Optional[GeofencedSampler] = None,
    ) -> None:
        self._uow = uow
        self._sampler = sampler or GeofencedSampler()

    def record_play_events(self, player: AuthenticatedPlayer, events: List[PlayEventIn]) -> int:
        """
        Inserts the whole batch or nothing; a failed insert rolls back every
        row of the batch and the player retries it as a whole.
        """
        if not events:
            raise ValidationError("No events to record")

        with self._uow() as store:
            screen_id = _current_screen_id(store, player.player_id)
            for event in events:
                store.insert_play_event(player.player_id, screen_id, event)

        logger.info("play_events_recorded", player_id=player.player_id, screen_id=screen_id, count=len(events))
        return len(events)

    def record_heartbeat(self, player: AuthenticatedPlayer, heartbeat: HeartbeatIn) -> HeartbeatOutcome:
        """
        Heartbeat row, live screen position and (for vehicles) the sampled
        location trail are written in one transaction.
        """
        outcome = HeartbeatOutcome()

        with self._uow() as store:
            screen_id = _current_screen_id(store, player.player_id)

            store.insert_heartbeat(player.player_id, screen_id, heartbeat)
            store.touch_player(player.player_id, heartbeat.timestamp, heartbeat.software_version)

            location = heartbeat.location
            if location is not None and location.is_complete:
                screen = store.get_screen(screen_id)
                if screen is not None:
                    store.update_screen_position(screen_id, location.lat, location.lng, heartbeat.timestamp)
                    outcome.position_updated = True

                    if screen.is_vehicle and self._sampler.should_persist(
                        store, screen_id, heartbeat.timestamp, location.lat, location.lng
                    ):
                        store.insert_location_history(
                            new_history_id(),
                            screen_id,
                            player.player_id,
                            LocationPoint(
                                recorded_at=heartbeat.timestamp,
                                latitude=location.lat,
                                longitude=location.lng,
                            ),
                        )
                        outcome.location_sampled = True

        logger.info(
            "heartbeat_recorded",
            player_id=player.player_id,
            screen_id=screen_id,
            status=heartbeat.status,
            position_updated=outcome.position_updated,
            location_sampled=outcome.location_sampled,
        )
        return outcome
