"""
The library module aggregates the registered sources into a single catalog.

Reads fan out to every repository and concatenate the results. A repository that fails a read is
skipped, so one broken source never hides the others. The order of the merged results is
unspecified. Callers that care should sort.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from medley.common import MedleyExpectedError, SourceNotFoundError
from medley.config import Config
from medley.repository import DirectoryBrowser, ScanProgress, TrackRepository, build_repository
from medley.scanner import FileNode
from medley.tracks import (
    Album,
    AlbumNotFoundError,
    Artist,
    ArtistNotFoundError,
    QueryOptions,
    SearchOptions,
    SourceType,
    Track,
    TrackNotFoundError,
    derive_albums,
    derive_artists,
)

logger = logging.getLogger(__name__)


class BrowsingNotSupportedError(MedleyExpectedError):
    pass


@dataclass
class SourceInfo:
    id: str
    type: SourceType

    def dump(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type}


@dataclass
class DirectoryContents:
    current_path: str
    files: list[FileNode]
    directories: list[FileNode]

    def dump(self) -> dict[str, Any]:
        def node(n: FileNode) -> dict[str, Any]:
            return {
                "name": n.name,
                "path": str(n.path),
                "is_directory": n.is_directory,
                "size": n.size,
                "extension": n.extension,
            }

        return {
            "current_path": self.current_path,
            "files": [node(f) for f in self.files],
            "directories": [node(d) for d in self.directories],
        }


class Library:
    def __init__(self, max_scan_workers: int | None = None) -> None:
        self._repositories: dict[str, TrackRepository] = {}
        self._lock = threading.Lock()
        self.max_scan_workers = max_scan_workers

    @classmethod
    def from_config(cls, c: Config) -> Library:
        library = cls(max_scan_workers=c.max_scan_workers)
        for source in c.enabled_sources:
            library.register_repository(build_repository(source, c.artwork_dir))
        return library

    def register_repository(self, repo: TrackRepository) -> None:
        """Register a repository under its source ID, replacing any previous one."""
        with self._lock:
            self._repositories[repo.source_id] = repo
        logger.debug(f"Registered source {repo.source_id} ({repo.source_type})")

    def unregister_repository(self, source_id: str) -> None:
        with self._lock:
            try:
                del self._repositories[source_id]
            except KeyError as e:
                raise SourceNotFoundError(f"Source {source_id} does not exist") from e
        logger.debug(f"Unregistered source {source_id}")

    def get_repositories(self) -> dict[str, TrackRepository]:
        with self._lock:
            return dict(self._repositories)

    def get_repository(self, source_id: str) -> TrackRepository:
        with self._lock:
            try:
                return self._repositories[source_id]
            except KeyError as e:
                raise SourceNotFoundError(f"Source {source_id} does not exist") from e

    def get_sources(self) -> list[SourceInfo]:
        return [
            SourceInfo(id=source_id, type=repo.source_type)
            for source_id, repo in self.get_repositories().items()
        ]

    def get_all_tracks(self, options: QueryOptions | None = None) -> list[Track]:
        tracks: list[Track] = []
        for source_id, repo in self.get_repositories().items():
            try:
                tracks.extend(repo.find_all(options))
            except Exception as e:
                logger.warning(f"Skipping source {source_id} while listing tracks: {e}")
        return tracks

    def search_tracks(self, query: str, options: SearchOptions | None = None) -> list[Track]:
        tracks: list[Track] = []
        for source_id, repo in self.get_repositories().items():
            try:
                tracks.extend(repo.search(query, options))
            except Exception as e:
                logger.warning(f"Skipping source {source_id} while searching tracks: {e}")
        return tracks

    def get_tracks_by_album(self, album_id: str) -> list[Track]:
        tracks: list[Track] = []
        for source_id, repo in self.get_repositories().items():
            try:
                tracks.extend(repo.find_by_album(album_id))
            except Exception as e:
                logger.warning(f"Skipping source {source_id} while finding album {album_id}: {e}")
        if not tracks:
            raise AlbumNotFoundError(f"Album {album_id} does not exist")
        return tracks

    def get_tracks_by_artist(self, artist_id: str) -> list[Track]:
        tracks: list[Track] = []
        for source_id, repo in self.get_repositories().items():
            try:
                tracks.extend(repo.find_by_artist(artist_id))
            except Exception as e:
                logger.warning(f"Skipping source {source_id} while finding artist {artist_id}: {e}")
        if not tracks:
            raise ArtistNotFoundError(f"Artist {artist_id} does not exist")
        return tracks

    def get_track_by_id(self, track_id: str) -> Track:
        """Return the track from the first source that has it. Collisions across sources are not detected."""
        for repo in self.get_repositories().values():
            try:
                return repo.find_by_id(track_id)
            except TrackNotFoundError:
                continue
        raise TrackNotFoundError(f"Track {track_id} does not exist")

    def get_albums(self) -> list[Album]:
        return derive_albums(self.get_all_tracks())

    def get_artists(self) -> list[Artist]:
        return derive_artists(self.get_all_tracks())

    def scan_source(self, source_id: str, cancel: threading.Event | None = None) -> None:
        self.get_repository(source_id).scan(cancel)

    def scan_all_sources(self, cancel: threading.Event | None = None) -> None:
        """Scan every source concurrently and wait for all of them. Raises the first failure."""
        repos = self.get_repositories()
        if not repos:
            return
        errors: list[Exception] = []
        with ThreadPoolExecutor(
            max_workers=self.max_scan_workers or len(repos),
            thread_name_prefix="medley-scan",
        ) as executor:
            futures = {executor.submit(repo.scan, cancel): source_id for source_id, repo in repos.items()}
            for future in as_completed(futures):
                try:
                    future.result()
                except Exception as e:
                    logger.warning(f"Scan of source {futures[future]} failed: {e}")
                    errors.append(e)
        if errors:
            raise errors[0]

    def trigger_scan(
        self,
        source_id: str | None = None,
        cancel: threading.Event | None = None,
    ) -> threading.Thread:
        """
        Start a scan in a background thread and return immediately. Pass a source ID to scan one
        source, or nothing to scan all of them. An unknown source ID fails here rather than in the
        thread. Observe completion through the scan progress.
        """
        if source_id is not None:
            self.get_repository(source_id)

        def run() -> None:
            try:
                if source_id is None:
                    self.scan_all_sources(cancel)
                else:
                    self.scan_source(source_id, cancel)
            except MedleyExpectedError as e:
                logger.warning(f"Background scan of {source_id or 'all sources'} failed: {e}")
            except Exception:
                logger.exception(f"Background scan of {source_id or 'all sources'} crashed")

        thread = threading.Thread(target=run, name=f"medley-scan-{source_id or 'all'}", daemon=True)
        thread.start()
        return thread

    def get_scan_progress(self, source_id: str) -> ScanProgress:
        return self.get_repository(source_id).get_scan_progress()

    def get_all_scan_progress(self) -> dict[str, ScanProgress]:
        return {
            source_id: repo.get_scan_progress() for source_id, repo in self.get_repositories().items()
        }

    def get_directory_browser(self, source_id: str) -> DirectoryBrowser:
        repo = self.get_repository(source_id)
        if not isinstance(repo, DirectoryBrowser):
            raise BrowsingNotSupportedError(f"Source {source_id} does not support directory browsing")
        return repo

    def browse_directory(self, source_id: str, relative_path: str = "") -> DirectoryContents:
        nodes = self.get_directory_browser(source_id).list_directory(relative_path)
        return DirectoryContents(
            current_path=relative_path,
            files=[n for n in nodes if not n.is_directory],
            directories=[n for n in nodes if n.is_directory],
        )

    def get_source_root_path(self, source_id: str) -> Path:
        return self.get_directory_browser(source_id).root_path
