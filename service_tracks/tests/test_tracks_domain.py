"""
Unit tests for track normalization.
"""

from xml.etree import ElementTree

import pytest

from service_tracks.app.domain.tracks import (
    UNKNOWN_PLAYED_AT,
    RawTrack,
    RecentTracks,
    TrackRecord,
    normalize_track,
    normalize_tracks,
    parse_played_at,
    select_artwork,
)


def _raw(**overrides):
    fields = {
        "name": "Teardrop",
        "artist": "Massive Attack",
        "album": "Mezzanine",
        "played_at": "1700000000",
        "images": (
            ("small", "https://img/s.png"),
            ("medium", "https://img/m.png"),
            ("large", "https://img/l.png"),
            ("extralarge", "https://img/xl.png"),
        ),
    }
    fields.update(overrides)
    return RawTrack(**fields)


class TestNormalizeTrack:
    """Test cases for normalize_track."""

    def test_maps_all_fields(self):
        track = normalize_track(_raw())

        assert track == TrackRecord(
            title="Teardrop",
            artist="Massive Attack",
            album="Mezzanine",
            epoch_time_played=1700000000,
            artwork_url="https://img/xl.png",
            is_currently_playing=False,
        )

    def test_now_playing_true(self):
        assert normalize_track(_raw(now_playing="true")).is_currently_playing is True

    @pytest.mark.parametrize("value", ["", "false", "TRUE", "1", "yes"])
    def test_now_playing_other_values_are_false(self, value):
        assert normalize_track(_raw(now_playing=value)).is_currently_playing is False

    def test_to_dict_uses_wire_keys(self):
        payload = normalize_track(_raw(now_playing="true")).to_dict()

        assert list(payload) == [
            "title",
            "artist",
            "album",
            "epoch_time_played",
            "artwork_url",
            "is_currently_playing",
        ]
        assert payload["is_currently_playing"] is True

    def test_record_is_immutable(self):
        track = normalize_track(_raw())

        with pytest.raises(AttributeError):
            track.title = "Angel"


class TestPlayedAt:
    """Test cases for played-at parsing."""

    def test_parses_epoch(self):
        assert parse_played_at("1699999999") == 1699999999

    @pytest.mark.parametrize("value, expected", [("+5", 5), ("-5", -5), ("007", 7)])
    def test_accepts_signed_decimal(self, value, expected):
        assert parse_played_at(value) == expected

    @pytest.mark.parametrize("value", [None, "", "soon", "12.5", "0x10", "1_700", " 5", "5\n", "\u0665"])
    def test_unparseable_falls_back_to_zero(self, value):
        assert parse_played_at(value) == UNKNOWN_PLAYED_AT == 0

    def test_unparseable_does_not_fail_the_record(self):
        track = normalize_track(_raw(played_at="not-a-number"))

        assert track.epoch_time_played == 0
        assert track.title == "Teardrop"


class TestArtworkSelection:
    """Test cases for artwork precedence."""

    def test_prefers_large_over_medium(self):
        images = (("medium", "https://img/m.png"), ("large", "https://img/l.png"))

        assert select_artwork(images) == "https://img/l.png"

    def test_precedence_ignores_document_order(self):
        images = (
            ("extralarge", "https://img/xl.png"),
            ("small", "https://img/s.png"),
        )
        assert select_artwork(reversed(images)) == "https://img/xl.png"

    def test_falls_back_to_small(self):
        assert select_artwork((("small", "https://img/s.png"),)) == "https://img/s.png"

    def test_unknown_labels_give_empty_artwork(self):
        assert select_artwork((("mega", "https://img/mega.png"), ("", "https://img/x.png"))) == ""

    def test_empty_url_counts_as_absent(self):
        images = (("extralarge", ""), ("large", "https://img/l.png"))

        assert select_artwork(images) == "https://img/l.png"

    def test_no_images(self):
        assert normalize_track(_raw(images=())).artwork_url == ""


class TestNormalizeTracks:
    """Test cases for list normalization."""

    def test_preserves_count_and_order(self):
        raws = [_raw(name=f"track-{i}", played_at=str(i)) for i in range(5)]

        tracks = normalize_tracks(raws)

        assert [t.title for t in tracks] == [f"track-{i}" for i in range(5)]
        assert [t.epoch_time_played for t in tracks] == [0, 1, 2, 3, 4]

    def test_recent_tracks_payload(self):
        payload = RecentTracks(tracks=tuple(normalize_tracks([_raw(), _raw(name="Angel")]))).to_dict()

        assert payload["total_tracks"] == 2
        assert [t["title"] for t in payload["tracks"]] == ["Teardrop", "Angel"]

    def test_empty_payload(self):
        assert RecentTracks().to_dict() == {"tracks": [], "total_tracks": 0}


class TestRawTrackFromElement:
    """Test cases for lifting XML elements."""

    def test_reads_nested_elements(self):
        element = ElementTree.fromstring(
            """
            <track nowplaying="true">
              <artist mbid="a1">Portishead</artist>
              <name>Roads</name>
              <album mbid="b1">Dummy</album>
              <url>https://www.last.fm/music/Portishead/_/Roads</url>
              <image size="small">https://img/s.png</image>
              <image size="large">https://img/l.png</image>
            </track>
            """
        )

        raw = RawTrack.from_element(element)

        assert raw.name == "Roads"
        assert raw.artist == "Portishead"
        assert raw.album == "Dummy"
        assert raw.now_playing == "true"
        assert raw.played_at == ""
        assert raw.images == (("small", "https://img/s.png"), ("large", "https://img/l.png"))
        assert not hasattr(raw, "url")

    def test_missing_children_become_empty(self):
        raw = RawTrack.from_element(ElementTree.fromstring("<track><date uts=\"42\"/></track>"))

        assert raw.name == ""
        assert raw.artist == ""
        assert raw.played_at == "42"
        assert raw.images == ()
