"""
The tracks module defines the track record shared by every source, the deterministic identifiers
derived from it, and the query options that the caches and the library accept.

Albums and artists are not stored anywhere. Their identifiers are hashes of the track's album and
artist text, so two tracks with the same album artist and album title always share an album ID,
and the Album/Artist summaries are computed from the tracks on demand.
"""

from __future__ import annotations

import dataclasses
import logging
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from medley.common import AlreadyExistsError, MedleyExpectedError, NotFoundError, short_sha256

logger = logging.getLogger(__name__)

SourceType = Literal["filesystem", "api-selfhosted"]
SOURCE_TYPE_FILESYSTEM: SourceType = "filesystem"
SOURCE_TYPE_API_SELFHOSTED: SourceType = "api-selfhosted"

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"

SORT_FIELDS = ["title", "artist", "album", "year", "duration", "added_at"]
SEARCH_FIELDS = ["title", "artist", "album", "album_artist", "genre"]
DEFAULT_SEARCH_FIELDS = ["title", "artist", "album"]
# The camelCase spelling is what the presentation layer historically sent.
_SORT_FIELD_ALIASES = {"addedAt": "added_at", "albumArtist": "album_artist"}


class TrackNotFoundError(NotFoundError):
    pass


class TrackAlreadyExistsError(AlreadyExistsError):
    pass


class AlbumNotFoundError(NotFoundError):
    pass


class ArtistNotFoundError(NotFoundError):
    pass


class InvalidQueryOptionsError(MedleyExpectedError, ValueError):
    pass


def track_id_for(locator: str | Path) -> str:
    return "track_" + short_sha256(str(locator))


def album_id_for(album: str, album_artist: str) -> str:
    key = f"{album_artist}_{album}" if album_artist else album
    return "album_" + short_sha256(key)


def artist_id_for(artist: str) -> str:
    return "artist_" + short_sha256(artist)


def _epoch() -> datetime:
    return datetime.fromtimestamp(0, tz=timezone.utc)


@dataclass(frozen=True, slots=True)
class Track:
    id: str
    source_id: str
    source_type: SourceType
    title: str
    artist: str = UNKNOWN_ARTIST
    artist_id: str = ""
    album: str = UNKNOWN_ALBUM
    album_id: str = ""
    album_artist: str = ""
    genre: str = ""
    year: int = 0
    track_number: int = 0
    disc_number: int = 0
    # Seconds.
    duration: float = 0.0
    format: str = ""
    # kbps; see `medley.extractor.probe_audio_properties` for how this is estimated.
    bit_rate: int = 0
    sample_rate: int = 0
    # Local sources.
    file_path: Path | None = None
    file_size: int = 0
    # Remote sources.
    external_id: str | None = None
    stream_url: str | None = None
    artwork_path: Path | None = None
    added_at: datetime = dataclasses.field(default_factory=_epoch)
    modified_at: datetime = dataclasses.field(default_factory=_epoch)

    def dump(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_id": self.source_id,
            "source_type": self.source_type,
            "title": self.title,
            "artist": self.artist,
            "artist_id": self.artist_id,
            "album": self.album,
            "album_id": self.album_id,
            "album_artist": self.album_artist,
            "genre": self.genre,
            "year": self.year,
            "track_number": self.track_number,
            "disc_number": self.disc_number,
            "duration": self.duration,
            "format": self.format,
            "bit_rate": self.bit_rate,
            "sample_rate": self.sample_rate,
            "file_path": str(self.file_path) if self.file_path else None,
            "file_size": self.file_size,
            "external_id": self.external_id,
            "stream_url": self.stream_url,
            "artwork_path": str(self.artwork_path) if self.artwork_path else None,
            "added_at": self.added_at.isoformat(),
            "modified_at": self.modified_at.isoformat(),
        }


@dataclass
class QueryOptions:
    # 0 means no limit.
    limit: int = 0
    offset: int = 0
    sort_by: str = "title"
    sort_order: Literal["asc", "desc"] = "asc"

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise InvalidQueryOptionsError(f"limit must be a non-negative integer: got {self.limit}")
        if self.offset < 0:
            raise InvalidQueryOptionsError(f"offset must be a non-negative integer: got {self.offset}")
        self.sort_by = _SORT_FIELD_ALIASES.get(self.sort_by, self.sort_by)
        if self.sort_order not in ("asc", "desc"):
            raise InvalidQueryOptionsError(f"sort order must be asc or desc: got {self.sort_order}")


@dataclass
class SearchOptions(QueryOptions):
    fields: list[str] = dataclasses.field(default_factory=lambda: list(DEFAULT_SEARCH_FIELDS))

    def __post_init__(self) -> None:
        super().__post_init__()
        fields = [_SORT_FIELD_ALIASES.get(f, f) for f in self.fields]
        for f in fields:
            if f not in SEARCH_FIELDS:
                raise InvalidQueryOptionsError(
                    f"Cannot search on field {f}: must be one of {', '.join(SEARCH_FIELDS)}"
                )
        self.fields = fields or list(DEFAULT_SEARCH_FIELDS)


_SORT_KEYS: dict[str, Callable[[Track], Any]] = {
    "title": lambda t: t.title,
    "artist": lambda t: t.artist,
    "album": lambda t: t.album,
    "year": lambda t: t.year,
    "duration": lambda t: t.duration,
    "added_at": lambda t: t.added_at,
}


def sort_tracks(tracks: list[Track], sort_by: str = "title", sort_order: str = "asc") -> list[Track]:
    """Sort in place and return the list. Unknown sort fields fall back to title."""
    key = _SORT_KEYS.get(_SORT_FIELD_ALIASES.get(sort_by, sort_by))
    if key is None:
        logger.debug(f"Unknown sort field {sort_by}, sorting by title")
        key = _SORT_KEYS["title"]
    tracks.sort(key=key, reverse=sort_order == "desc")
    return tracks


def paginate(tracks: list[Track], offset: int, limit: int) -> list[Track]:
    if offset >= len(tracks):
        return []
    if limit == 0:
        return tracks[offset:]
    return tracks[offset : offset + limit]


def matches_query(track: Track, query: str, fields: Iterable[str]) -> bool:
    """Query must already be lowercased. Any field containing the query is a match."""
    return any(query in str(getattr(track, f) or "").lower() for f in fields)


@dataclass
class Album:
    id: str
    source_id: str
    source_type: SourceType
    title: str
    artist: str
    artist_id: str
    year: int
    genre: str
    artwork_path: Path | None
    track_count: int
    total_duration: float
    added_at: datetime

    def dump(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_id": self.source_id,
            "source_type": self.source_type,
            "title": self.title,
            "artist": self.artist,
            "artist_id": self.artist_id,
            "year": self.year,
            "genre": self.genre,
            "artwork_path": str(self.artwork_path) if self.artwork_path else None,
            "track_count": self.track_count,
            "total_duration": self.total_duration,
            "added_at": self.added_at.isoformat(),
        }


@dataclass
class Artist:
    id: str
    source_id: str
    source_type: SourceType
    name: str
    album_count: int
    track_count: int
    added_at: datetime

    def dump(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_id": self.source_id,
            "source_type": self.source_type,
            "name": self.name,
            "album_count": self.album_count,
            "track_count": self.track_count,
            "added_at": self.added_at.isoformat(),
        }


def derive_albums(tracks: Iterable[Track]) -> list[Album]:
    """Group tracks into album summaries. Albums are scoped to their source."""
    groups: dict[tuple[str, str], list[Track]] = defaultdict(list)
    for t in tracks:
        groups[(t.source_id, t.album_id)].append(t)

    albums: list[Album] = []
    for (source_id, album_id), members in groups.items():
        first = members[0]
        artist = first.album_artist or first.artist
        albums.append(
            Album(
                id=album_id,
                source_id=source_id,
                source_type=first.source_type,
                title=first.album,
                artist=artist,
                artist_id=artist_id_for(artist),
                year=max(t.year for t in members),
                genre=next((t.genre for t in members if t.genre), ""),
                artwork_path=next((t.artwork_path for t in members if t.artwork_path), None),
                track_count=len(members),
                total_duration=sum(t.duration for t in members),
                added_at=min(t.added_at for t in members),
            )
        )
    albums.sort(key=lambda a: (a.title, a.artist))
    return albums


def derive_artists(tracks: Iterable[Track]) -> list[Artist]:
    """Group tracks into artist summaries by track artist. Artists are scoped to their source."""
    groups: dict[tuple[str, str], list[Track]] = defaultdict(list)
    for t in tracks:
        groups[(t.source_id, t.artist_id)].append(t)

    artists: list[Artist] = []
    for (source_id, artist_id), members in groups.items():
        artists.append(
            Artist(
                id=artist_id,
                source_id=source_id,
                source_type=members[0].source_type,
                name=members[0].artist,
                album_count=len({t.album_id for t in members}),
                track_count=len(members),
                added_at=min(t.added_at for t in members),
            )
        )
    artists.sort(key=lambda a: a.name)
    return artists
