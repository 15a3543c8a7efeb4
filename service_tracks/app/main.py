"""
Recent Tracks service: serves a user's Last.fm history from a short-lived snapshot.
"""

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import UpstreamError, ValidationError
from service_tracks.app.adapters.lastfm_client import LastFMClient
from service_tracks.app.caching.snapshot_cache import SnapshotCache
from service_tracks.app.domain.tracks import FetchParameters, RecentTracks, parse_int


class TracksService(BaseService):
    """Recent tracks service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        upstream: Optional[LastFMClient] = None,
        cache: Optional[SnapshotCache[FetchParameters, RecentTracks]] = None,
    ):
        super().__init__("tracks", config)
        self.upstream = upstream or LastFMClient(
            self.config.lastfm_base_url,
            self.config.lastfm_api_key,
            self.config.lastfm_user,
            timeout=self.config.upstream_timeout_seconds,
        )
        self.cache = cache or SnapshotCache(
            self.upstream.fetch_recent_tracks,
            ttl_seconds=self.config.cache_ttl_seconds,
            single_flight=self.config.single_flight,
            metrics=self.metrics,
            name="recent_tracks",
        )

        @self.app.on_event("startup")
        async def _startup():
            missing = self.config.validate_required()
            if missing:
                self.logger.warning("Missing env vars; upstream calls will fail", missing=missing)
            self.logger.info(
                "Server starting",
                host=self.config.host,
                port=self.config.port,
                cache_ttl_seconds=self.config.cache_ttl_seconds,
                single_flight=self.config.single_flight,
            )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.upstream.close()

        self._setup_tracks_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.tracks_service = self

    def _parse_limit(self, raw: Optional[str]) -> int:
        """Validate the ``limit`` query parameter."""
        if raw is None or raw == "":
            return self.config.default_limit
        limit = parse_int(raw)
        if limit is None:
            raise ValidationError("Invalid limit parameter", details={"limit": raw})
        if limit > self.config.max_limit:
            raise ValidationError(
                f"Limit is too high (>{self.config.max_limit})",
                details={"limit": limit, "max_limit": self.config.max_limit},
            )
        if limit < 1:
            raise ValidationError("Limit must be positive", details={"limit": limit})
        return limit

    def _setup_tracks_routes(self):
        """Set up recent-tracks routes."""

        @self.app.get("/recent-tracks")
        async def get_recent_tracks(request: Request):
            """Return the user's recent tracks, served from the snapshot when fresh."""
            params = FetchParameters(limit=self._parse_limit(request.query_params.get("limit")))
            headers = {"Access-Control-Allow-Origin": "*"}

            try:
                result = await self.cache.get_or_refresh(params)
            except UpstreamError as exc:
                if not self.config.soft_fail:
                    raise
                self.metrics.record_error(exc.code)
                self.logger.error(
                    "Recent tracks unavailable; serving empty list",
                    code=exc.code,
                    error=exc.message,
                    details=exc.details,
                )
                return JSONResponse(RecentTracks().to_dict(), headers=headers)

            request.state.cached = result.served_from_cache
            return JSONResponse(result.value.to_dict(), headers=headers)

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "tracks",
                "message": "Recent Tracks API",
                "version": "1.0.0",
            }

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Report snapshot cache state; never calls the upstream."""
        age = self.cache.age()
        return {
            "snapshot_cache": {
                "has_value": self.cache.peek() is not None,
                "age_seconds": round(age, 3) if age is not None else None,
                "ttl_seconds": self.cache.ttl_seconds,
                "refresh_in_flight": self.cache.refresh_in_flight,
                "stats": self.cache.stats(),
            },
            "lastfm": "configured" if not self.config.validate_required() else "missing_credentials",
        }


def create_app(config: Optional[ServiceConfig] = None):
    """Create FastAPI application."""
    service = TracksService(config)
    return service.app


def main() -> None:
    """Console entry point."""
    service = TracksService()
    service.run()


if __name__ == "__main__":
    main()
