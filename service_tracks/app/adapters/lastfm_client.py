"""
Async Last.fm HTTP client used by the Recent Tracks service.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional
from xml.etree import ElementTree

import httpx

from shared.errors import DecodeError, TransportError, UpstreamStatusError
from shared.logging import get_logger

from service_tracks.app.domain.tracks import (
    FetchParameters,
    RawTrack,
    RecentTracks,
    TrackRecord,
    normalize_tracks,
)


SERVICE_NAME = "lastfm"
RECENT_TRACKS_METHOD = "user.getrecenttracks"


class LastFMClient:
    """Fetches a user's recent tracks and normalizes them. Holds no cache."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        user: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url
        self.api_key = api_key
        self.user = user
        self.logger = get_logger("tracks.lastfm")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def fetch(self, params: FetchParameters) -> List[TrackRecord]:
        """Fetch recent tracks and return them normalized, in upstream order."""
        raw_tracks = await self.fetch_raw(params)
        return normalize_tracks(raw_tracks)

    async def fetch_recent_tracks(self, params: FetchParameters) -> RecentTracks:
        """Fetch recent tracks as the payload stored by the snapshot cache."""
        return RecentTracks(tracks=tuple(await self.fetch(params)))

    async def fetch_raw(self, params: FetchParameters) -> List[RawTrack]:
        """Perform one upstream call and decode its <track> entries."""
        query = self._query(params)
        started = time.monotonic()

        try:
            response = await self._client.get(self.base_url, params=query)
        except httpx.DecodingError as exc:
            self.logger.error(
                "Last.fm response body could not be decoded",
                error=str(exc),
                limit=params.limit,
            )
            raise DecodeError(SERVICE_NAME, f"error decoding body: {exc}") from exc
        except httpx.TransportError as exc:
            self.logger.error(
                "Last.fm request failed",
                error=str(exc),
                error_type=type(exc).__name__,
                limit=params.limit,
            )
            raise TransportError(
                SERVICE_NAME,
                f"error making request: {exc}",
                details={"error_type": type(exc).__name__},
            ) from exc

        duration_ms = round((time.monotonic() - started) * 1000, 2)

        if response.status_code != 200:
            self.logger.error(
                "Last.fm returned non-success status",
                status_code=response.status_code,
                duration_ms=duration_ms,
                limit=params.limit,
            )
            raise UpstreamStatusError(SERVICE_NAME, response.status_code)

        tracks = self.parse_document(response.content)
        self.logger.debug(
            "Last.fm recent tracks retrieved",
            tracks=len(tracks),
            duration_ms=duration_ms,
            limit=params.limit,
        )
        return tracks

    @staticmethod
    def parse_document(body: bytes) -> List[RawTrack]:
        """Decode an ``<lfm>`` document into raw tracks, preserving order."""
        try:
            root = ElementTree.fromstring(body)
        except ElementTree.ParseError as exc:
            raise DecodeError(SERVICE_NAME, f"error parsing XML: {exc}") from exc

        if root.tag != "lfm":
            raise DecodeError(SERVICE_NAME, f"unexpected root element <{root.tag}>")

        if root.get("status") == "failed":
            error = root.find("error")
            details: Dict[str, Any] = {}
            message = "upstream reported failure"
            if error is not None:
                details["upstream_code"] = error.get("code", "")
                message = (error.text or message).strip()
            raise DecodeError(SERVICE_NAME, message, details=details)

        recent = root.find("recenttracks")
        if recent is None:
            raise DecodeError(SERVICE_NAME, "missing <recenttracks> element")

        return [RawTrack.from_element(element) for element in recent.findall("track")]

    def _query(self, params: FetchParameters) -> Dict[str, str]:
        return {
            "method": RECENT_TRACKS_METHOD,
            "user": self.user,
            "api_key": self.api_key,
            "limit": str(params.limit),
        }
