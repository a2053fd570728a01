# backend/playout/services/playlist_builder.py

import random
from typing import List, Optional

from playout.db.store import PlayoutStore
from playout.models.flight_models import EligibleCreative
from playout.models.playlist_models import FALLBACK_FLIGHT_ID, PlaylistItem
from playout.services.compliance import is_compliant


def expand_weighted(eligible: List[EligibleCreative]) -> List[PlaylistItem]:
    """
    Play frequency = number of copies.
    Every flight allocation of a creative contributes `weight` copies tagged
    with that flight, so a creative appears sum(weights) times in total and
    weight 0 drops it.
    """
    items: List[PlaylistItem] = []

    for creative in eligible:
        for allocation in creative.allocations:
            for _ in range(allocation.weight):
                items.append(
                    PlaylistItem(
                        creative_id=creative.creative_id,
                        campaign_id=creative.campaign_id,
                        flight_id=allocation.flight_id,
                        file_url=creative.file_url,
                        duration_seconds=creative.duration_seconds,
                    )
                )

    return items


def fisher_yates_shuffle(items: List[PlaylistItem], rng: Optional[random.Random] = None) -> List[PlaylistItem]:
    """Uniform in-place shuffle; randomizes play order only."""
    rng = rng or random.SystemRandom()

    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]

    return items


def resolve_fallback(
    store: PlayoutStore,
    region_code: str,
    pre_approval_required: bool,
) -> Optional[PlaylistItem]:
    """
    Single-item playlist used when no flight yields anything playable:
    the newest compliant creative of an active campaign, or None.
    """
    candidate = store.find_fallback_creative(region_code, pre_approval_required)
    if candidate is None:
        return None

    if not is_compliant(candidate.approval_status, candidate.approval_code, pre_approval_required):
        return None

    return PlaylistItem(
        creative_id=candidate.creative_id,
        campaign_id=candidate.campaign_id,
        flight_id=FALLBACK_FLIGHT_ID,
        file_url=candidate.file_url,
        duration_seconds=candidate.duration_seconds,
    )


def build_playlist(
    store: PlayoutStore,
    region_code: str,
    eligible: List[EligibleCreative],
    pre_approval_required: bool,
    rng: Optional[random.Random] = None,
) -> List[PlaylistItem]:
    items = expand_weighted(eligible)

    if not items:
        fallback = resolve_fallback(store, region_code, pre_approval_required)
        return [fallback] if fallback is not None else []

    return fisher_yates_shuffle(items, rng)
