# backend/playout/dependencies.py
#
# Service providers for FastAPI's Depends(); tests swap them through
# app.dependency_overrides.

from playout.services.approval_service import ApprovalService
from playout.services.player_service import PlayerService
from playout.services.playlist_service import PlaylistService
from playout.services.telemetry_service import TelemetryService


def get_player_service() -> PlayerService:
    return PlayerService()


def get_playlist_service() -> PlaylistService:
    return PlaylistService()


def get_telemetry_service() -> TelemetryService:
    return TelemetryService()


def get_approval_service() -> ApprovalService:
    return ApprovalService()
