"""
Test fixtures for the playout engine.

Postgres is replaced by FakeDatabase: plain in-memory tables plus a
FakeStore exposing the same methods as PlayoutStore. `FakeDatabase.transaction`
plays the role of `unit_of_work`: it snapshots the tables, yields a store,
and restores the snapshot if the block raises.
"""

import contextlib
import copy
import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from playout.dependencies import (
    get_approval_service,
    get_player_service,
    get_playlist_service,
    get_telemetry_service,
)
from playout.main import app
from playout.models.approval_models import ApprovalStatus, CreativeApproval, CreativeStatus
from playout.models.flight_models import (
    ActiveFlight,
    CampaignStatus,
    Flight,
    FlightCreativeCandidate,
    FlightStatus,
    TargetType,
)
from playout.models.player_models import Player
from playout.models.playlist_models import FALLBACK_FLIGHT_ID
from playout.models.screen_models import LocationPoint, Region, Screen, ScreenClassification
from playout.schemas.schemas import HeartbeatIn, PlayEventIn
from playout.security.crypto_engine import CryptoEngine
from playout.services.approval_service import ApprovalService
from playout.services.flight_targeting import flight_targets_screen
from playout.services.player_service import PlayerService
from playout.services.playlist_service import PlaylistService
from playout.services.telemetry_service import TelemetryService


def new_id() -> str:
    return str(uuid.uuid4())


class FakeDatabase:
    def __init__(self) -> None:
        self.tables: Dict[str, object] = {
            "screens": {},
            "regions": {},
            "group_members": set(),
            "campaigns": {},
            "flights": {},
            "creatives": {},
            "flight_creatives": [],
            "approvals": {},
            "players": {},
            "play_events": [],
            "heartbeats": [],
            "location_history": [],
            "writes": [],
        }
        self.commits = 0
        self.rollbacks = 0
        # creative ids whose play_event insert fails, like a FK violation
        self.failing_creatives: set = set()

    @contextlib.contextmanager
    def transaction(self):
        snapshot = copy.deepcopy(self.tables)
        try:
            yield FakeStore(self)
        except Exception:
            self.tables = snapshot
            self.rollbacks += 1
            raise
        self.commits += 1

    def __getattr__(self, name):
        tables = self.__dict__.get("tables", {})
        if name in tables:
            return tables[name]
        raise AttributeError(name)

    # -----------------------------
    #  SEEDING HELPERS
    # -----------------------------

    def add_region(self, code: str, requires_pre_approval: bool = False) -> Region:
        region = Region(code=code, name=code, requires_pre_approval=requires_pre_approval)
        self.regions[code] = region
        return region

    def add_screen(
        self,
        region_code: str = "KE",
        city: str = "Nairobi",
        classification: ScreenClassification = ScreenClassification.VEHICLE,
        screen_id: Optional[str] = None,
    ) -> Screen:
        screen = Screen(
            id=screen_id or new_id(),
            region_code=region_code,
            city=city,
            classification=classification,
        )
        self.screens[screen.id] = screen
        return screen

    def add_to_group(self, group_id: str, screen_id: str) -> None:
        self.group_members.add((group_id, screen_id))

    def add_campaign(self, status: CampaignStatus = CampaignStatus.ACTIVE) -> str:
        campaign_id = new_id()
        self.campaigns[campaign_id] = status.value
        return campaign_id

    def add_flight(
        self,
        campaign_id: str,
        target_id: str,
        target_type: TargetType = TargetType.SCREEN,
        status: FlightStatus = FlightStatus.ACTIVE,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Flight:
        now = datetime.now(timezone.utc)
        flight = Flight(
            id=new_id(),
            campaign_id=campaign_id,
            start_datetime=start or now - timedelta(days=1),
            end_datetime=end or now + timedelta(days=1),
            target_type=target_type,
            target_id=target_id,
            status=status,
        )
        self.flights[flight.id] = flight
        return flight

    def add_creative(
        self,
        campaign_id: str,
        created_at: Optional[datetime] = None,
        status: CreativeStatus = CreativeStatus.PENDING_REVIEW,
        duration_seconds: int = 15,
    ) -> str:
        creative_id = new_id()
        self.creatives[creative_id] = {
            "campaign_id": campaign_id,
            "file_url": f"https://cdn.example.com/{creative_id}.mp4",
            "duration_seconds": duration_seconds,
            "status": status.value,
            "created_at": created_at or datetime.now(timezone.utc),
        }
        return creative_id

    def attach(self, flight_id: str, creative_id: str, weight: Optional[int] = 1) -> None:
        self.flight_creatives.append((flight_id, creative_id, weight))

    def approve(
        self,
        creative_id: str,
        region_code: str,
        approval_code: Optional[str] = "REG-001",
        status: ApprovalStatus = ApprovalStatus.APPROVED,
    ) -> None:
        self.approvals[(creative_id, region_code)] = CreativeApproval(
            creative_id=creative_id,
            region_code=region_code,
            status=status,
            approval_code=approval_code,
        )

    def add_history(self, screen_id: str, recorded_at: datetime, lat: float, lng: float) -> None:
        self.location_history.append(
            {
                "id": f"slh_{new_id()}",
                "screen_id": screen_id,
                "player_id": None,
                "point": LocationPoint(recorded_at=recorded_at, latitude=lat, longitude=lng),
                "source": "seed",
            }
        )


class FakeStore:
    """Same surface as playout.db.store.PlayoutStore, backed by FakeDatabase."""

    def __init__(self, db: FakeDatabase) -> None:
        self.db = db

    def _write(self, name: str) -> None:
        self.db.writes.append(name)

    def get_screen(self, screen_id: str) -> Optional[Screen]:
        return self.db.screens.get(screen_id)

    def get_region(self, code: str) -> Optional[Region]:
        return self.db.regions.get(code)

    def update_screen_position(self, screen_id, latitude, longitude, seen_at) -> None:
        screen = self.db.screens[screen_id]
        self.db.screens[screen_id] = screen.model_copy(
            update={"latitude": latitude, "longitude": longitude, "last_seen_at": seen_at}
        )
        self._write("update_screen_position")

    def find_active_flights(self, screen_id: str, now: datetime) -> List[ActiveFlight]:
        group_ids = {g for g, s in self.db.group_members if s == screen_id}
        return [
            ActiveFlight(id=f.id, campaign_id=f.campaign_id)
            for f in sorted(self.db.flights.values(), key=lambda f: f.id)
            if flight_targets_screen(f, screen_id, group_ids, now)
        ]

    def find_flight_creatives(self, flight_ids, region_code) -> List[FlightCreativeCandidate]:
        rows = []
        for flight_id, creative_id, weight in self.db.flight_creatives:
            if flight_id not in flight_ids:
                continue
            creative = self.db.creatives[creative_id]
            approval = self.db.approvals.get((creative_id, region_code))
            rows.append(
                FlightCreativeCandidate(
                    flight_id=flight_id,
                    campaign_id=creative["campaign_id"],
                    creative_id=creative_id,
                    file_url=creative["file_url"],
                    duration_seconds=creative["duration_seconds"],
                    weight=weight,
                    approval_status=approval.status.value if approval else None,
                    approval_code=approval.approval_code if approval else None,
                )
            )
        return rows

    def find_fallback_creative(self, region_code, requires_pre_approval) -> Optional[FlightCreativeCandidate]:
        candidates = []
        for creative_id, creative in self.db.creatives.items():
            approval = self.db.approvals.get((creative_id, region_code))
            if approval is None or approval.status != ApprovalStatus.APPROVED:
                continue
            if self.db.campaigns.get(creative["campaign_id"]) != CampaignStatus.ACTIVE.value:
                continue
            if requires_pre_approval and not (approval.approval_code or "").strip():
                continue
            candidates.append((creative["created_at"], creative_id, creative, approval))

        if not candidates:
            return None

        _, creative_id, creative, approval = max(candidates, key=lambda c: c[0])
        return FlightCreativeCandidate(
            flight_id=FALLBACK_FLIGHT_ID,
            campaign_id=creative["campaign_id"],
            creative_id=creative_id,
            file_url=creative["file_url"],
            duration_seconds=creative["duration_seconds"],
            weight=1,
            approval_status=approval.status.value,
            approval_code=approval.approval_code,
        )

    def get_creative_status(self, creative_id: str) -> Optional[str]:
        creative = self.db.creatives.get(creative_id)
        return creative["status"] if creative else None

    def set_creative_status(self, creative_id: str, status: str) -> None:
        self.db.creatives[creative_id]["status"] = status
        self._write("set_creative_status")

    def upsert_creative_approval(self, approval: CreativeApproval) -> None:
        self.db.approvals[(approval.creative_id, approval.region_code)] = approval
        self._write("upsert_creative_approval")

    def get_player(self, player_id: str) -> Optional[Player]:
        return self.db.players.get(player_id)

    def insert_player(self, player_id, screen_id, token_digest, software_version, now) -> None:
        self.db.players[player_id] = Player(
            id=player_id,
            screen_id=screen_id,
            auth_token=token_digest,
            is_active=True,
            software_version=software_version,
            last_seen_at=now,
        )
        self._write("insert_player")

    def deactivate_screen_players(self, screen_id: str, keep_player_id: str) -> int:
        count = 0
        for player_id, player in list(self.db.players.items()):
            if player.screen_id == screen_id and player_id != keep_player_id and player.is_active:
                self.db.players[player_id] = player.model_copy(update={"is_active": False})
                count += 1
        self._write("deactivate_screen_players")
        return count

    def set_player_config_hash(self, player_id: str, config_hash: str) -> None:
        player = self.db.players[player_id]
        self.db.players[player_id] = player.model_copy(update={"config_hash": config_hash})
        self._write("set_player_config_hash")

    def touch_player(self, player_id, seen_at, software_version=None) -> None:
        player = self.db.players[player_id]
        update = {"last_seen_at": seen_at}
        if software_version is not None:
            update["software_version"] = software_version
        self.db.players[player_id] = player.model_copy(update=update)
        self._write("touch_player")

    def insert_play_event(self, player_id: str, screen_id: str, event: PlayEventIn) -> None:
        if event.creative_id in self.db.failing_creatives:
            raise RuntimeError(f"insert failed for creative {event.creative_id}")
        self.db.play_events.append({"player_id": player_id, "screen_id": screen_id, "event": event})
        self._write("insert_play_event")

    def insert_heartbeat(self, player_id: str, screen_id: str, heartbeat: HeartbeatIn) -> None:
        self.db.heartbeats.append({"player_id": player_id, "screen_id": screen_id, "heartbeat": heartbeat})
        self._write("insert_heartbeat")

    def get_latest_location(self, screen_id: str) -> Optional[LocationPoint]:
        points = [h["point"] for h in self.db.location_history if h["screen_id"] == screen_id]
        if not points:
            return None
        return max(points, key=lambda p: p.recorded_at)

    def insert_location_history(self, history_id, screen_id, player_id, point, source="heartbeat") -> None:
        self.db.location_history.append(
            {
                "id": history_id,
                "screen_id": screen_id,
                "player_id": player_id,
                "point": point,
                "source": source,
            }
        )
        self._write("insert_location_history")


# -----------------------------
#  FIXTURES
# -----------------------------


@pytest.fixture
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def crypto() -> CryptoEngine:
    return CryptoEngine(mode="HMAC_SHA256", server_key="test-server-key")


@pytest.fixture
def player_service(db, crypto) -> PlayerService:
    return PlayerService(uow=db.transaction, crypto=crypto)


@pytest.fixture
def playlist_service(db) -> PlaylistService:
    return PlaylistService(uow=db.transaction, rng=random.Random(1234))


@pytest.fixture
def telemetry_service(db) -> TelemetryService:
    return TelemetryService(uow=db.transaction)


@pytest.fixture
def approval_service(db) -> ApprovalService:
    return ApprovalService(uow=db.transaction)


@pytest.fixture
def client(player_service, playlist_service, telemetry_service, approval_service):
    app.dependency_overrides[get_player_service] = lambda: player_service
    app.dependency_overrides[get_playlist_service] = lambda: playlist_service
    app.dependency_overrides[get_telemetry_service] = lambda: telemetry_service
    app.dependency_overrides[get_approval_service] = lambda: approval_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def kenya_screen(db) -> Screen:
    db.add_region("KE", requires_pre_approval=False)
    return db.add_screen(region_code="KE", city="Nairobi")


@pytest.fixture
def registered(player_service, kenya_screen):
    """(RegisteredPlayer, auth header) for a player on kenya_screen."""
    player = player_service.register(kenya_screen.id, software_version="1.4.0")
    headers = {"Authorization": f"Bearer {player.player_id}:{player.auth_token}"}
    return player, headers
