# backend/playout/models/player_models.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Player(BaseModel):
    """
    A player device bound to a screen.
    auth_token holds the digest of the device secret, never the secret itself.
    """

    id: str
    screen_id: str
    auth_token: str
    is_active: bool = True
    software_version: Optional[str] = None
    config_hash: Optional[str] = None
    last_seen_at: Optional[datetime] = None


class AuthenticatedPlayer(BaseModel):
    player_id: str
    screen_id: str


class RegisteredPlayer(BaseModel):
    """Returned once at registration; auth_token is the plaintext secret."""

    player_id: str
    auth_token: str
    screen_id: str
