# backend/playout/db/store.py

from datetime import datetime
from typing import List, Optional

from playout.models.approval_models import ApprovalStatus, CreativeApproval
from playout.models.flight_models import (
    ActiveFlight,
    CampaignStatus,
    FlightCreativeCandidate,
    FlightStatus,
    TargetType,
)
from playout.models.player_models import Player
from playout.models.playlist_models import FALLBACK_FLIGHT_ID
from playout.models.screen_models import LocationPoint, Region, Screen, ScreenClassification
from playout.schemas.schemas import HeartbeatIn, PlayEventIn


def _float_or_none(value) -> Optional[float]:
    # numeric columns come back as Decimal
    return float(value) if value is not None else None


class PlayoutStore:
    """
    All SQL the playout engine runs, bound to the cursor of one transaction.

    Never commits or rolls back on its own: the unit of work that created
    it owns the transaction.
    """

    def __init__(self, cursor) -> None:
        self._cur = cursor

    # -----------------------------
    #  SCREENS / REGIONS
    # -----------------------------

    def get_screen(self, screen_id: str) -> Optional[Screen]:
        self._cur.execute(
            """
            SELECT id, region_code, city, screen_classification,
                   publisher_org_id, latitude, longitude, last_seen_at
            FROM public.screens
            WHERE id = %s;
            """,
            (screen_id,),
        )
        row = self._cur.fetchone()
        if row is None:
            return None

        return Screen(
            id=str(row[0]),
            region_code=row[1],
            city=row[2],
            classification=row[3] or ScreenClassification.VEHICLE,
            publisher_org_id=str(row[4]) if row[4] is not None else None,
            latitude=_float_or_none(row[5]),
            longitude=_float_or_none(row[6]),
            last_seen_at=row[7],
        )

    def get_region(self, code: str) -> Optional[Region]:
        self._cur.execute(
            """
            SELECT code, name, requires_pre_approval, regulator_name
            FROM public.regions
            WHERE code = %s;
            """,
            (code,),
        )
        row = self._cur.fetchone()
        if row is None:
            return None

        return Region(
            code=row[0],
            name=row[1],
            requires_pre_approval=bool(row[2]),
            regulator_name=row[3],
        )

    def update_screen_position(
        self, screen_id: str, latitude: float, longitude: float, seen_at: datetime
    ) -> None:
        self._cur.execute(
            """
            UPDATE public.screens
            SET latitude = %s, longitude = %s, last_seen_at = %s
            WHERE id = %s;
            """,
            (latitude, longitude, seen_at, screen_id),
        )

    # -----------------------------
    #  FLIGHTS / CREATIVES
    # -----------------------------

    def find_active_flights(self, screen_id: str, now: datetime) -> List[ActiveFlight]:
        """
        Active flights whose window contains `now` and that target the
        screen directly or one of its screen groups.
        """
        self._cur.execute(
            """
            SELECT DISTINCT f.id, f.campaign_id
            FROM public.flights f
            WHERE f.status = %s
              AND f.start_datetime <= %s
              AND %s < f.end_datetime
              AND (
                (f.target_type = %s AND f.target_id = %s)
                OR (f.target_type = %s AND EXISTS (
                  SELECT 1 FROM public.screen_group_members sgm
                  WHERE sgm.screen_id = %s AND sgm.group_id = f.target_id
                ))
              )
            ORDER BY f.id;
            """,
            (
                FlightStatus.ACTIVE.value,
                now,
                now,
                TargetType.SCREEN.value,
                screen_id,
                TargetType.SCREEN_GROUP.value,
                screen_id,
            ),
        )
        return [ActiveFlight(id=str(row[0]), campaign_id=str(row[1])) for row in self._cur.fetchall()]

    def find_flight_creatives(
        self, flight_ids: List[str], region_code: str
    ) -> List[FlightCreativeCandidate]:
        """
        Creatives attached to the given flights, each joined with its
        approval for `region_code` (approval columns are NULL if none).
        """
        if not flight_ids:
            return []

        self._cur.execute(
            """
            SELECT fc.flight_id, c.campaign_id, c.id, c.file_url,
                   c.duration_seconds, fc.weight, ca.status, ca.approval_code
            FROM public.flight_creatives fc
            JOIN public.creatives c ON c.id = fc.creative_id
            LEFT JOIN public.regions r ON r.code = %s
            LEFT JOIN public.creative_approvals ca
              ON ca.creative_id = c.id AND ca.region_id = r.id
            WHERE fc.flight_id = ANY(%s::uuid[])
            ORDER BY fc.flight_id, c.id;
            """,
            (region_code, list(flight_ids)),
        )

        candidates: List[FlightCreativeCandidate] = []
        for row in self._cur.fetchall():
            candidates.append(
                FlightCreativeCandidate(
                    flight_id=str(row[0]),
                    campaign_id=str(row[1]),
                    creative_id=str(row[2]),
                    file_url=row[3],
                    duration_seconds=row[4],
                    weight=row[5],
                    approval_status=row[6],
                    approval_code=row[7],
                )
            )
        return candidates

    def find_fallback_creative(
        self, region_code: str, requires_pre_approval: bool
    ) -> Optional[FlightCreativeCandidate]:
        """
        Most recently created creative of an active campaign that holds an
        approved (and, where required, coded) approval for the region.
        """
        self._cur.execute(
            """
            SELECT c.campaign_id, c.id, c.file_url, c.duration_seconds,
                   ca.status, ca.approval_code
            FROM public.creatives c
            JOIN public.creative_approvals ca ON ca.creative_id = c.id
            JOIN public.regions r ON r.id = ca.region_id
            JOIN public.campaigns camp ON camp.id = c.campaign_id
            WHERE r.code = %s
              AND ca.status = %s
              AND camp.status = %s
              AND (NOT %s OR COALESCE(BTRIM(ca.approval_code), '') <> '')
            ORDER BY c.created_at DESC
            LIMIT 1;
            """,
            (
                region_code,
                ApprovalStatus.APPROVED.value,
                CampaignStatus.ACTIVE.value,
                requires_pre_approval,
            ),
        )
        row = self._cur.fetchone()
        if row is None:
            return None

        return FlightCreativeCandidate(
            flight_id=FALLBACK_FLIGHT_ID,
            campaign_id=str(row[0]),
            creative_id=str(row[1]),
            file_url=row[2],
            duration_seconds=row[3],
            weight=1,
            approval_status=row[4],
            approval_code=row[5],
        )

    def get_creative_status(self, creative_id: str) -> Optional[str]:
        self._cur.execute(
            "SELECT status FROM public.creatives WHERE id = %s;",
            (creative_id,),
        )
        row = self._cur.fetchone()
        return row[0] if row is not None else None

    def set_creative_status(self, creative_id: str, status: str) -> None:
        self._cur.execute(
            "UPDATE public.creatives SET status = %s WHERE id = %s;",
            (status, creative_id),
        )

    def upsert_creative_approval(self, approval: CreativeApproval) -> None:
        self._cur.execute(
            """
            INSERT INTO public.creative_approvals
              (id, creative_id, region_id, status, approval_code,
               approved_by_user_id, approved_at, rejected_reason, created_at)
            VALUES (
              gen_random_uuid(), %s,
              (SELECT id FROM public.regions WHERE code = %s),
              %s, %s, %s, %s, %s, NOW()
            )
            ON CONFLICT (creative_id, region_id)
            DO UPDATE SET
              status = EXCLUDED.status,
              approval_code = EXCLUDED.approval_code,
              approved_by_user_id = EXCLUDED.approved_by_user_id,
              approved_at = EXCLUDED.approved_at,
              rejected_reason = EXCLUDED.rejected_reason;
            """,
            (
                approval.creative_id,
                approval.region_code,
                approval.status.value,
                approval.approval_code,
                approval.approved_by_user_id,
                approval.approved_at,
                approval.rejected_reason,
            ),
        )

    # -----------------------------
    #  PLAYERS
    # -----------------------------

    def get_player(self, player_id: str) -> Optional[Player]:
        self._cur.execute(
            """
            SELECT id, screen_id, auth_token, is_active,
                   software_version, config_hash, last_seen_at
            FROM public.players
            WHERE id = %s;
            """,
            (player_id,),
        )
        row = self._cur.fetchone()
        if row is None:
            return None

        return Player(
            id=row[0],
            screen_id=str(row[1]),
            auth_token=row[2],
            is_active=bool(row[3]),
            software_version=row[4],
            config_hash=row[5],
            last_seen_at=row[6],
        )

    def insert_player(
        self,
        player_id: str,
        screen_id: str,
        token_digest: str,
        software_version: Optional[str],
        now: datetime,
    ) -> None:
        self._cur.execute(
            """
            INSERT INTO public.players
              (id, screen_id, auth_token, is_active, software_version, last_seen_at, created_at)
            VALUES (%s, %s, %s, TRUE, %s, %s, %s);
            """,
            (player_id, screen_id, token_digest, software_version, now, now),
        )

    def deactivate_screen_players(self, screen_id: str, keep_player_id: str) -> int:
        self._cur.execute(
            """
            UPDATE public.players
            SET is_active = FALSE
            WHERE screen_id = %s AND id <> %s AND is_active;
            """,
            (screen_id, keep_player_id),
        )
        return self._cur.rowcount

    def set_player_config_hash(self, player_id: str, config_hash: str) -> None:
        self._cur.execute(
            "UPDATE public.players SET config_hash = %s WHERE id = %s;",
            (config_hash, player_id),
        )

    def touch_player(
        self, player_id: str, seen_at: datetime, software_version: Optional[str] = None
    ) -> None:
        self._cur.execute(
            """
            UPDATE public.players
            SET last_seen_at = %s,
                software_version = COALESCE(%s, software_version)
            WHERE id = %s;
            """,
            (seen_at, software_version, player_id),
        )

    # -----------------------------
    #  TELEMETRY
    # -----------------------------

    def insert_play_event(self, player_id: str, screen_id: str, event: PlayEventIn) -> None:
        lat = event.location.lat if event.location else None
        lng = event.location.lng if event.location else None

        self._cur.execute(
            """
            INSERT INTO public.play_events
              (player_id, screen_id, creative_id, campaign_id, flight_id,
               started_at, duration_seconds, play_status, lat, lng)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s);
            """,
            (
                player_id,
                screen_id,
                event.creative_id,
                event.campaign_id,
                event.flight_id,
                event.started_at,
                event.duration_seconds,
                event.play_status,
                lat,
                lng,
            ),
        )

    def insert_heartbeat(self, player_id: str, screen_id: str, heartbeat: HeartbeatIn) -> None:
        metrics = heartbeat.metrics
        location = heartbeat.location

        self._cur.execute(
            """
            INSERT INTO public.heartbeats
              (player_id, screen_id, "timestamp", status, software_version,
               storage_free_mb, cpu_usage, network_type, signal_strength,
               lat, lng)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s);
            """,
            (
                player_id,
                screen_id,
                heartbeat.timestamp,
                heartbeat.status,
                heartbeat.software_version,
                metrics.storage_free_mb if metrics else None,
                metrics.cpu_usage if metrics else None,
                metrics.network_type if metrics else None,
                metrics.signal_strength if metrics else None,
                location.lat if location else None,
                location.lng if location else None,
            ),
        )

    def get_latest_location(self, screen_id: str) -> Optional[LocationPoint]:
        self._cur.execute(
            """
            SELECT recorded_at, latitude, longitude
            FROM public.screen_location_history
            WHERE screen_id = %s
            ORDER BY recorded_at DESC
            LIMIT 1;
            """,
            (screen_id,),
        )
        row = self._cur.fetchone()
        if row is None:
            return None

        return LocationPoint(
            recorded_at=row[0],
            latitude=float(row[1]),
            longitude=float(row[2]),
        )

    def insert_location_history(
        self,
        history_id: str,
        screen_id: str,
        player_id: str,
        point: LocationPoint,
        source: str = "heartbeat",
    ) -> None:
        self._cur.execute(
            """
            INSERT INTO public.screen_location_history
              (id, screen_id, player_id, recorded_at, latitude, longitude, source)
            VALUES (%s, %s, %s, %s, %s, %s, %s);
            """,
            (
                history_id,
                screen_id,
                player_id,
                point.recorded_at,
                point.latitude,
                point.longitude,
                source,
            ),
        )
