"""
The cache module holds a source's tracks in memory, keyed by track ID.

The table is guarded by a reader/writer lock. Queries copy the matching entries out under the read
lock and do their sorting and pagination afterwards, so a long query never holds up a scan for
longer than the copy takes. Tracks are immutable, so the copies can be shared freely.
"""

from __future__ import annotations

from medley.common import ReadWriteLock
from medley.tracks import (
    QueryOptions,
    SearchOptions,
    Track,
    matches_query,
    paginate,
    sort_tracks,
)


class TrackCache:
    def __init__(self) -> None:
        self._tracks: dict[str, Track] = {}
        self._lock = ReadWriteLock()

    def add(self, track: Track) -> None:
        """Insert or replace the track with the same ID."""
        with self._lock.write():
            self._tracks[track.id] = track

    def get(self, track_id: str) -> Track | None:
        with self._lock.read():
            return self._tracks.get(track_id)

    def delete(self, track_id: str) -> None:
        with self._lock.write():
            self._tracks.pop(track_id, None)

    def clear(self) -> None:
        with self._lock.write():
            self._tracks.clear()

    def count(self) -> int:
        with self._lock.read():
            return len(self._tracks)

    def get_all(self, options: QueryOptions | None = None) -> list[Track]:
        options = options or QueryOptions()
        with self._lock.read():
            tracks = list(self._tracks.values())
        sort_tracks(tracks, options.sort_by, options.sort_order)
        return paginate(tracks, options.offset, options.limit)

    def search(self, query: str, options: SearchOptions | None = None) -> list[Track]:
        options = options or SearchOptions()
        query = query.lower()
        with self._lock.read():
            tracks = [t for t in self._tracks.values() if matches_query(t, query, options.fields)]
        sort_tracks(tracks, options.sort_by, options.sort_order)
        return paginate(tracks, options.offset, options.limit)

    def find_by_album(self, album_id: str) -> list[Track]:
        with self._lock.read():
            tracks = [t for t in self._tracks.values() if t.album_id == album_id]
        tracks.sort(key=lambda t: (t.disc_number, t.track_number))
        return tracks

    def find_by_artist(self, artist_id: str) -> list[Track]:
        with self._lock.read():
            tracks = [t for t in self._tracks.values() if t.artist_id == artist_id]
        tracks.sort(key=lambda t: (t.album, t.track_number))
        return tracks
