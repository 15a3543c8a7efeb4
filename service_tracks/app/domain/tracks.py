"""
Track domain model and upstream record normalization.

Raw Last.fm ``<track>`` elements are first lifted into :class:`RawTrack`
(plain data, no XML types) and then turned into :class:`TrackRecord` by
:func:`normalize_track`, a pure function.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
from xml.etree.ElementTree import Element

# Artwork precedence, largest first. Last.fm spells "extra-large" as "extralarge".
ARTWORK_SIZE_PRIORITY: Tuple[str, ...] = ("extralarge", "large", "medium", "small")

# Played-at value used when the upstream timestamp is missing or unparseable
# (now-playing tracks carry no <date>).
UNKNOWN_PLAYED_AT = 0

# Optionally signed ASCII decimal integer, matched against the whole string.
_INTEGER = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class FetchParameters:
    """Request shape forwarded to the upstream."""

    limit: int = 10


@dataclass(frozen=True)
class RawTrack:
    """One upstream track entry, as sent by Last.fm."""

    name: str = ""
    artist: str = ""
    album: str = ""
    played_at: str = ""
    now_playing: str = ""
    images: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_element(cls, element: Element) -> "RawTrack":
        """Lift a ``<track>`` element; missing children become empty strings."""
        date = element.find("date")
        images = tuple(
            (image.get("size", ""), (image.text or "").strip())
            for image in element.findall("image")
        )
        return cls(
            name=_text(element, "name"),
            artist=_text(element, "artist"),
            album=_text(element, "album"),
            played_at=date.get("uts", "") if date is not None else "",
            now_playing=element.get("nowplaying", ""),
            images=images,
        )


@dataclass(frozen=True)
class TrackRecord:
    """Normalized, upstream-agnostic representation of one played track."""

    title: str
    artist: str
    album: str
    epoch_time_played: int
    artwork_url: str
    is_currently_playing: bool

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the track to a JSON-friendly dictionary."""
        return {
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "epoch_time_played": self.epoch_time_played,
            "artwork_url": self.artwork_url,
            "is_currently_playing": self.is_currently_playing,
        }


@dataclass(frozen=True)
class RecentTracks:
    """Ordered, immutable list of normalized tracks plus their count."""

    tracks: Tuple[TrackRecord, ...] = field(default_factory=tuple)

    @property
    def total_tracks(self) -> int:
        return len(self.tracks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tracks": [track.to_dict() for track in self.tracks],
            "total_tracks": self.total_tracks,
        }


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse a strict base-10 integer string, or return None."""
    if value is None or not _INTEGER.fullmatch(value):
        return None
    return int(value)


def parse_played_at(value: Optional[str]) -> int:
    """Parse an epoch-seconds string, falling back to UNKNOWN_PLAYED_AT."""
    played_at = parse_int(value)
    return UNKNOWN_PLAYED_AT if played_at is None else played_at


def select_artwork(images: Iterable[Tuple[str, str]]) -> str:
    """Pick the best image URL by ARTWORK_SIZE_PRIORITY; empty when none match."""
    by_size: Dict[str, str] = {}
    for size, url in images:
        # First non-empty URL per size label wins
        if url and size not in by_size:
            by_size[size] = url
    for size in ARTWORK_SIZE_PRIORITY:
        if size in by_size:
            return by_size[size]
    return ""


def normalize_track(raw: RawTrack) -> TrackRecord:
    """Map one raw upstream track to a TrackRecord."""
    return TrackRecord(
        title=raw.name,
        artist=raw.artist,
        album=raw.album,
        epoch_time_played=parse_played_at(raw.played_at),
        artwork_url=select_artwork(raw.images),
        is_currently_playing=raw.now_playing == "true",
    )


def normalize_tracks(raw_tracks: Iterable[RawTrack]) -> List[TrackRecord]:
    """Normalize in upstream order; never drops or reorders entries."""
    return [normalize_track(raw) for raw in raw_tracks]


def _text(element: Element, tag: str) -> str:
    child = element.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text.strip()
