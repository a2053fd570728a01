# backend/playout/security/player_auth.py

from typing import Optional

from fastapi import Depends, Header

from playout.config import COMPLIANCE_API_KEY
from playout.dependencies import get_player_service
from playout.errors import UnauthorizedError
from playout.models.player_models import AuthenticatedPlayer
from playout.security.crypto_engine import CryptoEngine
from playout.services.player_service import PlayerService


def parse_bearer(authorization: Optional[str]) -> tuple[str, str]:
    """
    Authorization: Bearer <player_id>:<auth_token>
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError(
            "Missing or invalid authorization header. Use: Authorization: Bearer <player_id>:<auth_token>"
        )

    player_id, _, auth_token = authorization[len("Bearer "):].strip().partition(":")
    if not player_id or not auth_token:
        raise UnauthorizedError("Invalid token format. Expected: <player_id>:<auth_token>")

    return player_id, auth_token


def authenticate_player(
    authorization: Optional[str] = Header(None),
    players: PlayerService = Depends(get_player_service),
) -> AuthenticatedPlayer:
    player_id, auth_token = parse_bearer(authorization)
    return players.authenticate(player_id, auth_token)


def require_compliance_key(x_compliance_key: Optional[str] = Header(None)) -> None:
    if not CryptoEngine.keys_match(x_compliance_key, COMPLIANCE_API_KEY):
        raise UnauthorizedError("Invalid compliance key")
