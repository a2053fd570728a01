# backend/playout/services/playlist_service.py

import random
from datetime import datetime, timezone
from typing import Optional

from playout.db.unit_of_work import UnitOfWorkFactory, unit_of_work
from playout.logging_config import get_logger
from playout.models.player_models import AuthenticatedPlayer
from playout.models.playlist_models import PlaylistOutcome, PlaylistResponse
from playout.services.compliance import resolve_eligible_creatives
from playout.services.config_hash import compute_config_hash, matches
from playout.services.flight_targeting import resolve_active_flights
from playout.services.playlist_builder import build_playlist

logger = get_logger(__name__)


class PlaylistService:
    """
    Resolves the playlist of a player's screen.

    Flight targeting, compliance, weighted expansion and the config-hash
    check all run inside one unit of work; the only write is the new
    config_hash on the player, issued before the commit.
    """

    def __init__(self, uow: UnitOfWorkFactory = unit_of_work, rng: Optional[random.Random] = None) -> None:
        self._uow = uow
        self._rng = rng

    def resolve(
        self,
        player: AuthenticatedPlayer,
        if_none_match: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PlaylistOutcome:
        now = now or datetime.now(timezone.utc)

        with self._uow() as store:
            screen, flights = resolve_active_flights(store, player.screen_id, now)

            compliance = resolve_eligible_creatives(store, screen.region_code, flights)
            playlist = build_playlist(
                store,
                screen.region_code,
                compliance.eligible,
                compliance.requires_pre_approval,
                rng=self._rng,
            )

            config_hash = compute_config_hash(screen.id, screen.region_code, screen.city, playlist)

            if matches(if_none_match, config_hash):
                logger.debug("playlist_not_modified", screen_id=screen.id, config_hash=config_hash)
                return PlaylistOutcome(config_hash=config_hash, not_modified=True)

            store.set_player_config_hash(player.player_id, config_hash)

        fallback = len(playlist) == 1 and playlist[0].is_fallback
        logger.info(
            "playlist_resolved",
            screen_id=screen.id,
            player_id=player.player_id,
            region=screen.region_code,
            flights=len(flights),
            items=len(playlist),
            fallback=fallback,
            config_hash=config_hash,
        )

        return PlaylistOutcome(
            config_hash=config_hash,
            response=PlaylistResponse(
                screen_id=screen.id,
                region=screen.region_code,
                city=screen.city,
                config_hash=config_hash,
                playlist=playlist,
            ),
        )
