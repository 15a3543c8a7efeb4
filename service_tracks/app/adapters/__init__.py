"""
Adapters package for the Recent Tracks Service.

Contains HTTP client wrappers for external dependencies. Adapters own base
URLs, request shapes, and the mapping of transport failures onto shared
errors; they hold no cache state.
"""

from .lastfm_client import LastFMClient

__all__ = ["LastFMClient"]
