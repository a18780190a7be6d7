"""
The scanner module walks a source's root directory and discovers the audio files in it. It also
provides non-recursive directory listings for browsing.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from medley.common import MedleyExpectedError, ScanCancelledError, normalize_extension, uniq

logger = logging.getLogger(__name__)

# AppleDouble resource forks.
DEFAULT_IGNORED_PREFIXES = ["._"]
# Finder and Explorer metadata.
DEFAULT_IGNORED_FILES = [".DS_Store", "Thumbs.db"]


class DirectoryScanError(MedleyExpectedError):
    pass


class DirectoryListError(MedleyExpectedError):
    pass


@dataclass
class FileNode:
    name: str
    path: Path
    is_directory: bool
    # Files only.
    size: int = 0
    # Files only; lowercased, with the leading dot.
    extension: str = ""


class DirectoryScanner:
    def __init__(
        self,
        root_path: Path,
        supported_formats: Iterable[str],
        ignored_files: Iterable[str] | None = None,
        ignored_prefixes: Iterable[str] | None = None,
    ) -> None:
        self.root_path = root_path
        self.supported_formats = set(uniq([normalize_extension(f) for f in supported_formats]))
        self.ignored_files = list(ignored_files if ignored_files is not None else DEFAULT_IGNORED_FILES)
        self.ignored_prefixes = list(
            ignored_prefixes if ignored_prefixes is not None else DEFAULT_IGNORED_PREFIXES
        )

    def is_supported(self, extension: str) -> bool:
        return normalize_extension(extension) in self.supported_formats

    def should_ignore(self, name: str) -> bool:
        return name in self.ignored_files or any(name.startswith(p) for p in self.ignored_prefixes)

    def scan_directory(
        self,
        cancel: threading.Event | None = None,
        callback: Callable[[Path], None] | None = None,
    ) -> list[Path]:
        """
        Recursively collect the supported audio files under the root, in lexical order. The callback
        is invoked once per accepted file as it is found. If the cancel event is set, the walk stops
        at the next entry with a ScanCancelledError. Unreadable subdirectories are skipped, and
        symlinked directories are not followed.
        """
        if not self.root_path.is_dir():
            raise DirectoryScanError(f"Scan root {self.root_path} does not exist or is not a directory")

        try:
            entries = sorted(os.scandir(self.root_path), key=lambda e: e.name)
        except OSError as e:
            raise DirectoryScanError(f"Failed to read scan root {self.root_path}: {e}") from e

        audio_files: list[Path] = []
        self._walk(entries, audio_files, cancel, callback)
        return audio_files

    def _walk(
        self,
        entries: list[os.DirEntry[str]],
        audio_files: list[Path],
        cancel: threading.Event | None,
        callback: Callable[[Path], None] | None,
    ) -> None:
        for entry in entries:
            if cancel is not None and cancel.is_set():
                raise ScanCancelledError(f"Scan of {self.root_path} was cancelled")
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                if is_dir:
                    children = sorted(os.scandir(entry.path), key=lambda e: e.name)
            except OSError as e:
                logger.debug(f"Skipping unreadable entry {entry.path}: {e}")
                continue
            if is_dir:
                self._walk(children, audio_files, cancel, callback)
                continue
            if self.should_ignore(entry.name):
                continue
            path = Path(entry.path)
            if not self.is_supported(path.suffix):
                continue
            audio_files.append(path)
            if callback is not None:
                callback(path)

    def list_directory(self, path: Path) -> list[FileNode]:
        """List the immediate children of a directory, sorted by name. Entries that cannot be stat'd are skipped."""
        try:
            entries = sorted(os.scandir(path), key=lambda e: e.name)
        except OSError as e:
            raise DirectoryListError(f"Failed to list directory {path}: {e}") from e

        nodes: list[FileNode] = []
        for entry in entries:
            if self.should_ignore(entry.name):
                continue
            try:
                is_dir = entry.is_dir()
                st = entry.stat()
            except OSError as e:
                logger.debug(f"Skipping entry {entry.path}: {e}")
                continue
            if is_dir:
                nodes.append(FileNode(name=entry.name, path=Path(entry.path), is_directory=True))
            else:
                nodes.append(
                    FileNode(
                        name=entry.name,
                        path=Path(entry.path),
                        is_directory=False,
                        size=st.st_size,
                        extension=normalize_extension(Path(entry.name).suffix),
                    )
                )
        return nodes
