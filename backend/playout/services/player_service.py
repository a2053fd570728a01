# backend/playout/services/player_service.py

import secrets
from datetime import datetime, timezone
from typing import Optional

from playout.db.unit_of_work import UnitOfWorkFactory, unit_of_work
from playout.errors import PlayerDisconnectedError, ScreenNotFoundError, UnauthorizedError
from playout.logging_config import get_logger
from playout.models.player_models import AuthenticatedPlayer, RegisteredPlayer
from playout.security.crypto_engine import CryptoEngine, get_crypto_engine

logger = get_logger(__name__)


def new_player_id() -> str:
    return f"player_{secrets.token_urlsafe(16)}"


class PlayerService:
    def __init__(
        self,
        uow: UnitOfWorkFactory = unit_of_work,
        crypto: Optional[CryptoEngine] = None,
    ) -> None:
        self._uow = uow
        self._crypto = crypto or get_crypto_engine()

    def register(
        self,
        screen_id: str,
        software_version: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RegisteredPlayer:
        """
        Binds a new player device to a screen.

        Any other active player of the screen is deactivated, so there is
        at most one active device per screen. The plaintext secret is only
        returned here; the database keeps its digest.
        """
        now = now or datetime.now(timezone.utc)
        player_id = new_player_id()
        secret = self._crypto.issue_secret()

        with self._uow() as store:
            if store.get_screen(screen_id) is None:
                raise ScreenNotFoundError(f"Screen not found: {screen_id}")

            store.insert_player(
                player_id,
                screen_id,
                self._crypto.digest_token(secret),
                software_version,
                now,
            )
            replaced = store.deactivate_screen_players(screen_id, keep_player_id=player_id)

        logger.info("player_registered", player_id=player_id, screen_id=screen_id, replaced=replaced)
        return RegisteredPlayer(player_id=player_id, auth_token=secret, screen_id=screen_id)

    def authenticate(self, player_id: str, auth_token: str) -> AuthenticatedPlayer:
        """
        Read-only: checking credentials never writes to the database.
        """
        with self._uow() as store:
            player = store.get_player(player_id)

        if player is None or not self._crypto.verify_token(auth_token, player.auth_token):
            logger.warning("player_auth_rejected", player_id=player_id, reason="bad_credentials")
            raise UnauthorizedError()

        if not player.is_active:
            logger.warning("player_auth_rejected", player_id=player_id, reason="inactive")
            raise PlayerDisconnectedError()

        return AuthenticatedPlayer(player_id=player.id, screen_id=player.screen_id)
