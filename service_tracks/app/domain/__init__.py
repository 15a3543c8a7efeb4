"""
Track domain model for the Recent Tracks Service.
"""

from .tracks import FetchParameters, RawTrack, RecentTracks, TrackRecord, normalize_track, normalize_tracks

__all__ = [
    "FetchParameters",
    "RawTrack",
    "RecentTracks",
    "TrackRecord",
    "normalize_track",
    "normalize_tracks",
]
