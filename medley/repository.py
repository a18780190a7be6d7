"""
The repository module defines the contract every music source implements, and the filesystem
implementation of it.

A repository owns a cache of the source's tracks and knows how to refill it with a scan. Browsing a
source's directory tree is an optional capability: callers check for it with
`isinstance(repo, DirectoryBrowser)` rather than assuming every source has a tree.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from medley.cache import TrackCache
from medley.common import MedleyExpectedError, ScanCancelledError, ScanInProgressError, uniq
from medley.extractor import Extractor, default_extractor_registry
from medley.scanner import DirectoryScanner, FileNode
from medley.tracks import (
    SOURCE_TYPE_FILESYSTEM,
    QueryOptions,
    SearchOptions,
    SourceType,
    Track,
    TrackAlreadyExistsError,
    TrackNotFoundError,
)

if TYPE_CHECKING:
    from medley.config import FilesystemSourceConfig

logger = logging.getLogger(__name__)


class InvalidBrowsePathError(MedleyExpectedError, ValueError):
    pass


@dataclass
class ScanProgress:
    is_scanning: bool = False
    total_files: int = 0
    processed_files: int = 0
    current_file: str = ""
    errors: list[str] = dataclasses.field(default_factory=list)

    def copy(self) -> ScanProgress:
        return dataclasses.replace(self, errors=list(self.errors))

    def dump(self) -> dict[str, object]:
        return {
            "is_scanning": self.is_scanning,
            "total_files": self.total_files,
            "processed_files": self.processed_files,
            "current_file": self.current_file,
            "errors": list(self.errors),
        }


class TrackRepository(Protocol):
    source_id: str
    source_type: SourceType

    def find_by_id(self, track_id: str) -> Track: ...

    def find_all(self, options: QueryOptions | None = None) -> list[Track]: ...

    def create(self, track: Track) -> None: ...

    def update(self, track: Track) -> None: ...

    def delete(self, track_id: str) -> None: ...

    def find_by_album(self, album_id: str) -> list[Track]: ...

    def find_by_artist(self, artist_id: str) -> list[Track]: ...

    def search(self, query: str, options: SearchOptions | None = None) -> list[Track]: ...

    def scan(self, cancel: threading.Event | None = None) -> None: ...

    def get_scan_progress(self) -> ScanProgress: ...


@runtime_checkable
class DirectoryBrowser(Protocol):
    """Sources with a navigable directory tree."""

    @property
    def root_path(self) -> Path: ...

    def list_directory(self, relative_path: str) -> list[FileNode]: ...


class FilesystemTrackRepository:
    source_type: SourceType = SOURCE_TYPE_FILESYSTEM

    def __init__(
        self,
        source_id: str,
        root_paths: list[Path],
        supported_formats: Iterable[str],
        extractor: Extractor,
    ) -> None:
        if not root_paths:
            raise ValueError(f"Source {source_id} must have at least one root path")
        self.source_id = source_id
        self.root_paths = list(root_paths)
        self.extractor = extractor

        formats: list[str] = []
        for ext in uniq(list(supported_formats)):
            if extractor.supports_format(ext):
                formats.append(ext)
            else:
                logger.warning(f"Source {source_id}: no extractor can read {ext} files, ignoring them")
        self.supported_formats = formats
        self.scanners = [DirectoryScanner(root, formats) for root in self.root_paths]

        self.cache = TrackCache()
        self._progress = ScanProgress()
        self._progress_lock = threading.Lock()

    @property
    def root_path(self) -> Path:
        return self.root_paths[0]

    def find_by_id(self, track_id: str) -> Track:
        track = self.cache.get(track_id)
        if track is None:
            raise TrackNotFoundError(f"Track {track_id} not found in source {self.source_id}")
        return track

    def find_all(self, options: QueryOptions | None = None) -> list[Track]:
        return self.cache.get_all(options)

    def create(self, track: Track) -> None:
        if self.cache.get(track.id) is not None:
            raise TrackAlreadyExistsError(f"Track {track.id} already exists in source {self.source_id}")
        self.cache.add(track)

    def update(self, track: Track) -> None:
        if self.cache.get(track.id) is None:
            raise TrackNotFoundError(f"Track {track.id} not found in source {self.source_id}")
        self.cache.add(track)

    def delete(self, track_id: str) -> None:
        if self.cache.get(track_id) is None:
            raise TrackNotFoundError(f"Track {track_id} not found in source {self.source_id}")
        self.cache.delete(track_id)

    def find_by_album(self, album_id: str) -> list[Track]:
        return self.cache.find_by_album(album_id)

    def find_by_artist(self, artist_id: str) -> list[Track]:
        return self.cache.find_by_artist(artist_id)

    def search(self, query: str, options: SearchOptions | None = None) -> list[Track]:
        return self.cache.search(query, options)

    def scan(self, cancel: threading.Event | None = None) -> None:
        """
        Rebuild the cache from disk. The cache is cleared up front, so concurrent readers see a
        partial catalog until the scan finishes. Per-file failures are recorded in the progress
        errors and do not abort the scan.
        """
        with self._progress_lock:
            if self._progress.is_scanning:
                raise ScanInProgressError(f"Source {self.source_id} is already being scanned")
            self._progress = ScanProgress(is_scanning=True)

        start = time.time()
        try:
            self.cache.clear()
            logger.info(f"Scanning source {self.source_id} ({', '.join(map(str, self.root_paths))})")

            def on_discovered(path: Path) -> None:
                with self._progress_lock:
                    self._progress.current_file = str(path)
                    self._progress.processed_files += 1

            files: list[Path] = []
            for scanner in self.scanners:
                files.extend(scanner.scan_directory(cancel=cancel, callback=on_discovered))

            with self._progress_lock:
                self._progress.total_files = len(files)
                self._progress.processed_files = 0

            for path in files:
                if cancel is not None and cancel.is_set():
                    raise ScanCancelledError(f"Scan of source {self.source_id} was cancelled")
                with self._progress_lock:
                    self._progress.current_file = str(path)
                    self._progress.processed_files += 1
                try:
                    track = self.extractor.extract(path)
                except Exception as e:
                    logger.warning(f"Failed to extract metadata from {path}: {e}")
                    with self._progress_lock:
                        self._progress.errors.append(f"{path}: {e}")
                    continue
                track = dataclasses.replace(
                    track,
                    source_id=self.source_id,
                    source_type=self.source_type,
                )
                self.cache.add(track)
        finally:
            with self._progress_lock:
                self._progress.is_scanning = False
                self._progress.current_file = ""
                processed = self._progress.processed_files
                num_errors = len(self._progress.errors)
            logger.info(
                f"Finished scanning source {self.source_id} in {time.time() - start:.2f}s: "
                f"{processed} files processed, {self.cache.count()} tracks, {num_errors} errors"
            )

    def get_scan_progress(self) -> ScanProgress:
        with self._progress_lock:
            return self._progress.copy()

    def list_directory(self, relative_path: str) -> list[FileNode]:
        """List a directory relative to the primary root. `""` and `"/"` are the root itself."""
        root = self.root_path
        if relative_path in ("", "/"):
            return self.scanners[0].list_directory(root)
        target = root / relative_path.lstrip("/")
        if not target.resolve().is_relative_to(root.resolve()):
            raise InvalidBrowsePathError(
                f"Path {relative_path} is outside of the root of source {self.source_id}"
            )
        return self.scanners[0].list_directory(target)


def build_repository(
    source_config: FilesystemSourceConfig,
    artwork_dir: Path | None = None,
) -> FilesystemTrackRepository:
    return FilesystemTrackRepository(
        source_id=source_config.id,
        root_paths=source_config.root_paths,
        supported_formats=source_config.supported_formats,
        extractor=default_extractor_registry(artwork_dir),
    )
