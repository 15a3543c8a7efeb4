"""
Integration tests for the recent-tracks flow: HTTP route -> snapshot cache -> Last.fm client.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from service_tracks.app.adapters.lastfm_client import LastFMClient
from service_tracks.app.caching.snapshot_cache import SnapshotCache
from service_tracks.app.main import TracksService
from shared.config import ServiceConfig


THREE_TRACKS_XML = b"""<?xml version="1.0" encoding="utf-8"?>
<lfm status="ok">
  <recenttracks user="listener" page="1" perPage="3" totalPages="1" total="3">
    <track>
      <artist mbid="">Burial</artist>
      <name>Archangel</name>
      <album mbid="">Untrue</album>
      <image size="medium">https://img/untrue-m.png</image>
      <image size="large">https://img/untrue-l.png</image>
      <date uts="100">01 Jan 1970, 00:01</date>
    </track>
    <track nowplaying="true">
      <artist mbid="">Four Tet</artist>
      <name>Two Thousand and Seventeen</name>
      <album mbid="">New Energy</album>
      <image size="small">https://img/ne-s.png</image>
      <date uts="200">01 Jan 1970, 00:03</date>
    </track>
    <track>
      <artist mbid="">Jon Hopkins</artist>
      <name>Open Eye Signal</name>
      <album mbid="">Immunity</album>
      <date uts="300">01 Jan 1970, 00:05</date>
    </track>
  </recenttracks>
</lfm>
"""


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class Upstream:
    """Scripted Last.fm transport."""

    def __init__(self):
        self.requests = []
        self.responses = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            outcome = self.responses.pop(0)
        else:
            outcome = httpx.Response(200, content=THREE_TRACKS_XML)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _corrupt_gzip() -> httpx.Response:
    return httpx.Response(200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"junk"))


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(upstream, clock):
    config = ServiceConfig(service_name="tracks", lastfm_api_key="key", lastfm_user="listener")
    lastfm = LastFMClient(
        config.lastfm_base_url,
        config.lastfm_api_key,
        config.lastfm_user,
        client=httpx.AsyncClient(transport=httpx.MockTransport(upstream)),
    )
    cache = SnapshotCache(lastfm.fetch_recent_tracks, ttl_seconds=5, clock=clock)
    return TracksService(config, upstream=lastfm, cache=cache)


@pytest.fixture
def client(service):
    with TestClient(service.app) as test_client:
        yield test_client


class TestRecentTracksFlow:
    """End-to-end flow through the HTTP surface."""

    def test_three_tracks_normalized_in_order(self, client, upstream):
        response = client.get("/recent-tracks?limit=3")

        assert response.status_code == 200
        body = response.json()
        assert body["total_tracks"] == 3
        assert [t["epoch_time_played"] for t in body["tracks"]] == [100, 200, 300]
        assert [t["is_currently_playing"] for t in body["tracks"]] == [False, True, False]
        assert body["tracks"][0]["artwork_url"] == "https://img/untrue-l.png"
        assert body["tracks"][1]["artwork_url"] == "https://img/ne-s.png"
        assert body["tracks"][2]["artwork_url"] == ""
        assert upstream.requests[0].url.params["limit"] == "3"

    def test_repeat_within_ttl_is_served_from_snapshot(self, client, upstream, clock):
        first = client.get("/recent-tracks").json()
        clock.now = 4.9
        second = client.get("/recent-tracks").json()

        assert first == second
        assert len(upstream.requests) == 1

    def test_expired_snapshot_refreshes(self, client, upstream, clock):
        client.get("/recent-tracks")
        clock.now = 5.0
        client.get("/recent-tracks")

        assert len(upstream.requests) == 2

    def test_failed_refresh_keeps_snapshot_for_later_callers(self, client, upstream, clock, service):
        client.get("/recent-tracks")
        held = service.cache.peek()

        clock.now = 6.0
        upstream.responses.append(httpx.Response(500))
        failed = client.get("/recent-tracks")

        assert failed.status_code == 502
        assert failed.json()["details"]["status_code"] == 500
        assert service.cache.peek() is held

        recovered = client.get("/recent-tracks")
        assert recovered.status_code == 200
        assert recovered.json()["total_tracks"] == 3
        assert len(upstream.requests) == 3

    def test_transport_failure_without_snapshot(self, client, upstream, service):
        upstream.responses.append(httpx.ConnectError("refused"))

        response = client.get("/recent-tracks")

        assert response.status_code == 502
        assert response.json()["code"] == "UPSTREAM_TRANSPORT_ERROR"
        assert service.cache.peek() is None

    def test_validation_happens_before_upstream(self, client, upstream):
        response = client.get("/recent-tracks?limit=99")

        assert response.status_code == 400
        assert upstream.requests == []

    def test_health_reflects_populated_snapshot(self, client, clock):
        client.get("/recent-tracks")
        clock.now = 2.0

        cache_state = client.get("/health").json()["dependencies"]["snapshot_cache"]

        assert cache_state["has_value"] is True
        assert cache_state["age_seconds"] == 2.0
        assert cache_state["stats"]["misses"] == 1

    def test_corrupt_encoding_is_decode_error(self, client, upstream):
        upstream.responses.append(_corrupt_gzip())

        response = client.get("/recent-tracks")

        assert response.status_code == 502
        assert response.json()["code"] == "UPSTREAM_DECODE_ERROR"


class TestSoftFailFlow:
    """Upstream failures with TRACKS_SOFT_FAIL enabled."""

    @pytest.fixture
    def service(self, upstream, clock):
        config = ServiceConfig(
            service_name="tracks", lastfm_api_key="key", lastfm_user="listener", soft_fail=True
        )
        lastfm = LastFMClient(
            config.lastfm_base_url,
            config.lastfm_api_key,
            config.lastfm_user,
            client=httpx.AsyncClient(transport=httpx.MockTransport(upstream)),
        )
        cache = SnapshotCache(lastfm.fetch_recent_tracks, ttl_seconds=5, clock=clock)
        return TracksService(config, upstream=lastfm, cache=cache)

    def test_corrupt_encoding_serves_empty_list(self, client, upstream):
        upstream.responses.append(_corrupt_gzip())

        response = client.get("/recent-tracks")

        assert response.status_code == 200
        assert response.json() == {"tracks": [], "total_tracks": 0}
