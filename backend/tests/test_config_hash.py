"""Tests for the config-hash cache gate."""

import random

from playout.models.playlist_models import PlaylistItem
from playout.services.config_hash import compute_config_hash, matches, normalize_fingerprint, split_fingerprints


def item(creative_id, flight_id="f1"):
    return PlaylistItem(
        creative_id=creative_id,
        campaign_id="camp-1",
        flight_id=flight_id,
        file_url=f"https://cdn.example.com/{creative_id}.mp4",
        duration_seconds=15,
    )


PLAYLIST = [item("a"), item("a"), item("b"), item("c", "f2"), item("a", "f2")]


def config_hash(playlist, screen_id="s1", region="KE", city="Nairobi"):
    return compute_config_hash(screen_id, region, city, playlist)


class TestComputeConfigHash:
    def test_is_short_hex(self):
        value = config_hash(PLAYLIST)
        assert len(value) == 16
        int(value, 16)

    def test_stable_under_reshuffle(self):
        expected = config_hash(PLAYLIST)
        for seed in range(10):
            shuffled = list(PLAYLIST)
            random.Random(seed).shuffle(shuffled)
            assert config_hash(shuffled) == expected

    def test_changes_with_occurrence_count(self):
        assert config_hash(PLAYLIST + [item("b")]) != config_hash(PLAYLIST)

    def test_changes_with_originating_flight(self):
        moved = [item("a"), item("a"), item("b"), item("c", "f3"), item("a", "f2")]
        assert config_hash(moved) != config_hash(PLAYLIST)

    def test_changes_with_screen_context(self):
        assert config_hash(PLAYLIST, city="Mombasa") != config_hash(PLAYLIST)
        assert config_hash(PLAYLIST, region="UG") != config_hash(PLAYLIST)
        assert config_hash(PLAYLIST, screen_id="s2") != config_hash(PLAYLIST)

    def test_empty_playlist_has_a_hash(self):
        assert len(config_hash([])) == 16


class TestFingerprint:
    def test_plain_and_quoted_values(self):
        assert normalize_fingerprint("abc") == "abc"
        assert normalize_fingerprint('"abc"') == "abc"
        assert normalize_fingerprint('W/"abc"') == "abc"

    def test_missing_or_blank(self):
        assert normalize_fingerprint(None) is None
        assert normalize_fingerprint('""') is None

    def test_matches(self):
        assert matches('"0123abcd0123abcd"', "0123abcd0123abcd")
        assert not matches("stale", "0123abcd0123abcd")
        assert not matches(None, "0123abcd0123abcd")

    def test_list_of_entity_tags(self):
        header = '"stale0000000000", W/"0123abcd0123abcd"'
        assert split_fingerprints(header) == ["stale0000000000", "0123abcd0123abcd"]
        assert matches(header, "0123abcd0123abcd")
        assert not matches('"a", "b"', "0123abcd0123abcd")
        assert split_fingerprints(' , ""') == []
