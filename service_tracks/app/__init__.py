"""
Recent Tracks Service package.

The service fronts the rate-limited Last.fm API with a single in-memory
snapshot, serving a normalized JSON projection of a user's recent tracks.

Structure:
- app.main: FastAPI app, routes, and wiring.
- app.adapters: Last.fm HTTP client.
- app.caching: Single-slot snapshot cache with single-flight refresh.
- app.domain: Track records and normalization.
"""
