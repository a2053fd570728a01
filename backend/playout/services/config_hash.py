# backend/playout/services/config_hash.py

import hashlib
import json
from collections import Counter
from typing import List, Optional

from playout.config import CONFIG_HASH_LENGTH
from playout.models.playlist_models import PlaylistItem


def _canonical_payload(screen_id: str, region: str, city: str, playlist: List[PlaylistItem]) -> bytes:
    """
    Canonical JSON of the playlist composition.

    Only (creative, flight, count) triples go in, sorted, so two shuffles of
    the same composition serialize identically. Keys are sorted and there
    is no whitespace, so the bytes never depend on dict ordering.
    """
    counts = Counter((item.creative_id, item.flight_id) for item in playlist)
    composition = [
        {"cid": creative_id, "fid": flight_id, "n": n}
        for (creative_id, flight_id), n in sorted(counts.items())
    ]

    data = {
        "screen_id": screen_id,
        "region": region,
        "city": city,
        "playlist": composition,
    }
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def compute_config_hash(
    screen_id: str,
    region: str,
    city: str,
    playlist: List[PlaylistItem],
    length: int = CONFIG_HASH_LENGTH,
) -> str:
    raw = _canonical_payload(screen_id, region, city, playlist)
    return hashlib.sha256(raw).hexdigest()[:length]


def normalize_fingerprint(value: Optional[str]) -> Optional[str]:
    """
    Accepts what players send in If-None-Match:
    abc, "abc" or W/"abc".
    """
    if value is None:
        return None

    value = value.strip()
    if value.startswith("W/"):
        value = value[2:]
    value = value.strip('"')
    return value or None


def split_fingerprints(value: Optional[str]) -> List[str]:
    """If-None-Match may list several entity tags: "a", W/"b"."""
    if value is None:
        return []

    fingerprints = []
    for part in value.split(","):
        fingerprint = normalize_fingerprint(part)
        if fingerprint is not None:
            fingerprints.append(fingerprint)
    return fingerprints


def matches(client_value: Optional[str], config_hash: str) -> bool:
    return config_hash in split_fingerprints(client_value)
