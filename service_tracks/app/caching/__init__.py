"""
Recent Tracks caching package.

Provides the snapshot cache used to shield the upstream from request bursts.
"""

from .snapshot_cache import CacheResult, CacheState, Snapshot, SnapshotCache

__all__ = ["CacheResult", "CacheState", "Snapshot", "SnapshotCache"]
