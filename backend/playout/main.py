# backend/playout/main.py

from typing import Optional

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from playout.config import CORS_ALLOW_ORIGINS
from playout.dependencies import (
    get_approval_service,
    get_player_service,
    get_playlist_service,
    get_telemetry_service,
)
from playout.errors import ConflictOrInternalError, PlayoutError
from playout.logging_config import configure_logging, get_logger
from playout.models.approval_models import CreativeApproval
from playout.models.player_models import AuthenticatedPlayer, RegisteredPlayer
from playout.models.playlist_models import PlaylistResponse
from playout.schemas.schemas import ApprovalUpdateIn, HeartbeatIn, PlaybackBatch, RegisterPlayerIn
from playout.security.player_auth import authenticate_player, require_compliance_key
from playout.services.approval_service import ApprovalService
from playout.services.player_service import PlayerService
from playout.services.playlist_service import PlaylistService
from playout.services.telemetry_service import TelemetryService

configure_logging()
logger = get_logger(__name__)

app = FastAPI(title="DOOH Playout Engine")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in CORS_ALLOW_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag"],
)


# -----------------------------
#  ERRORS
# -----------------------------
def _error_body(code: str, message: str) -> dict:
    return {"status": "error", "code": code, "message": message}


@app.exception_handler(PlayoutError)
def handle_playout_error(request: Request, exc: PlayoutError) -> JSONResponse:
    if isinstance(exc, ConflictOrInternalError):
        logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.code, exc.message))


@app.exception_handler(RequestValidationError)
def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'invalid request')}" if location else first.get("msg", "invalid request")
    return JSONResponse(status_code=400, content=_error_body("validation_error", message))


@app.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content=_error_body("internal_error", "Internal Server Error"))


@app.api_route("/health", methods=["GET", "HEAD"])
def health():
    return {"status": "ok"}


# -----------------------------
#  PLAYER (device-facing API)
# -----------------------------
@app.post("/api/player/register", response_model=RegisteredPlayer, status_code=201)
def register_player(
    body: RegisterPlayerIn,
    players: PlayerService = Depends(get_player_service),
):
    return players.register(body.screen_id, body.software_version)


@app.get(
    "/api/player/playlist",
    response_model=PlaylistResponse,
    responses={304: {"description": "Playlist unchanged since the presented config hash"}},
)
def get_playlist(
    response: Response,
    if_none_match: Optional[str] = Header(None),
    player: AuthenticatedPlayer = Depends(authenticate_player),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    outcome = playlists.resolve(player, if_none_match=if_none_match)

    etag = f'"{outcome.config_hash}"'
    if outcome.not_modified:
        return Response(status_code=304, headers={"ETag": etag})

    response.headers["ETag"] = etag
    return outcome.response


@app.post("/api/player/events/playbacks", status_code=201)
def record_playbacks(
    body: PlaybackBatch,
    player: AuthenticatedPlayer = Depends(authenticate_player),
    telemetry: TelemetryService = Depends(get_telemetry_service),
):
    recorded = telemetry.record_play_events(player, body.events)
    return {"status": "success", "recorded": recorded}


@app.post("/api/player/heartbeat", status_code=201)
def record_heartbeat(
    body: HeartbeatIn,
    player: AuthenticatedPlayer = Depends(authenticate_player),
    telemetry: TelemetryService = Depends(get_telemetry_service),
):
    outcome = telemetry.record_heartbeat(player, body)
    return {"status": "success", "location_sampled": outcome.location_sampled}


# -----------------------------
#  COMPLIANCE
# -----------------------------
@app.put(
    "/api/creatives/{creative_id}/approvals/{region_code}",
    response_model=CreativeApproval,
    dependencies=[Depends(require_compliance_key)],
)
def update_creative_approval(
    creative_id: str,
    region_code: str,
    body: ApprovalUpdateIn,
    approvals: ApprovalService = Depends(get_approval_service),
):
    return approvals.set_creative_approval(creative_id, region_code, body)
