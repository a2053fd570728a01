# backend/playout/models/playlist_models.py

from typing import List, Optional

from pydantic import BaseModel

# flight_id used for items that do not come from any flight
FALLBACK_FLIGHT_ID = "00000000-0000-0000-0000-000000000000"


class PlaylistItem(BaseModel):
    creative_id: str
    campaign_id: str
    flight_id: str
    file_url: str
    duration_seconds: int

    @property
    def is_fallback(self) -> bool:
        return self.flight_id == FALLBACK_FLIGHT_ID


class PlaylistResponse(BaseModel):
    """
    What a player receives for GET /api/player/playlist.
    """

    screen_id: str
    region: str
    city: str
    config_hash: str
    playlist: List[PlaylistItem]


class PlaylistOutcome(BaseModel):
    """
    Result of one playlist resolution:
    - not_modified=True: the client already has this config_hash, no body
    - otherwise `response` carries the full playlist
    """

    config_hash: str
    not_modified: bool = False
    response: Optional[PlaylistResponse] = None
