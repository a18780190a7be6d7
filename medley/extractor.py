"""
The extractor module turns an audio file on disk into a Track record.

Extraction is deliberately forgiving: a file that exists and has content always produces a record.
When its tags cannot be read, we fall back to a minimal record built from the filename so that the
file still shows up in the library. Only I/O failures and empty files are reported as errors.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

import mutagen

from medley.audiotags import (
    SUPPORTED_AUDIO_EXTENSIONS,
    AudioTags,
    Picture,
    TagReadError,
    UnsupportedTagValueTypeError,
)
from medley.common import MetadataExtractionError, UnsupportedFormatError, normalize_extension
from medley.tracks import (
    SOURCE_TYPE_FILESYSTEM,
    UNKNOWN_ALBUM,
    UNKNOWN_ARTIST,
    Track,
    album_id_for,
    artist_id_for,
    track_id_for,
)

logger = logging.getLogger(__name__)

ARTWORK_EXTENSIONS_BY_MIME = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/bmp": ".bmp",
    "image/webp": ".webp",
}
DEFAULT_ARTWORK_EXTENSION = ".jpg"


class Extractor(Protocol):
    def extract(self, path: Path) -> Track: ...

    def supports_format(self, extension: str) -> bool: ...


@dataclass
class AudioProperties:
    # Seconds.
    duration: float = 0.0
    # kbps.
    bit_rate: int = 0
    # Hz.
    sample_rate: int = 0


AudioPropertiesProber = Callable[[Path, Any], AudioProperties]


def probe_audio_properties(path: Path, m: Any = None) -> AudioProperties:
    """
    Read the duration and sample rate from the container and estimate the bitrate.

    The bitrate is the file size divided by the duration. That is the average over the whole file,
    container overhead and embedded artwork included, so it overstates the audio bitrate of heavily
    tagged files. It is good enough for display. If the file cannot be stat'd, the bitrate is 0.
    """
    if m is None:
        try:
            m = mutagen.File(path)  # type: ignore
        except mutagen.MutagenError as e:  # type: ignore
            logger.debug(f"Failed to probe audio properties of {path}: {e}")
            return AudioProperties()
    if m is None or m.info is None:
        return AudioProperties()

    duration = float(getattr(m.info, "length", 0.0) or 0.0)
    sample_rate = int(getattr(m.info, "sample_rate", 0) or 0)
    bit_rate = 0
    if duration > 0:
        try:
            bit_rate = int(path.stat().st_size * 8 / duration / 1000)
        except OSError as e:
            logger.debug(f"Failed to stat {path} for its bitrate: {e}")
    return AudioProperties(duration=duration, bit_rate=bit_rate, sample_rate=sample_rate)


def artwork_extension_for(mime: str) -> str:
    return ARTWORK_EXTENSIONS_BY_MIME.get(mime.lower().strip(), DEFAULT_ARTWORK_EXTENSION)


def save_artwork(picture: Picture, track_id: str, artwork_dir: Path) -> Path | None:
    """Persist embedded artwork to `<artwork_dir>/<track id><ext>`. Failures are logged, not raised."""
    path = artwork_dir / f"{track_id}{artwork_extension_for(picture.mime)}"
    try:
        artwork_dir.mkdir(parents=True, exist_ok=True)
        path.write_bytes(picture.data)
    except OSError as e:
        logger.warning(f"Failed to write artwork for {track_id} to {path}: {e}")
        return None
    return path


class TagExtractor:
    """Extracts Track records from tagged audio files with mutagen."""

    def __init__(
        self,
        source_id: str = "",
        artwork_dir: Path | None = None,
        prober: AudioPropertiesProber = probe_audio_properties,
    ) -> None:
        self.source_id = source_id
        self.artwork_dir = artwork_dir
        self.prober = prober

    def supports_format(self, extension: str) -> bool:
        return normalize_extension(extension) in SUPPORTED_AUDIO_EXTENSIONS

    def extract(self, path: Path) -> Track:
        extension = normalize_extension(path.suffix)
        if not self.supports_format(extension):
            raise UnsupportedFormatError(f"Unsupported audio format {extension or '(none)'}: {path}")

        try:
            st = path.stat()
            with path.open("rb"):
                pass
        except OSError as e:
            raise MetadataExtractionError(f"Failed to open {path}: {e}") from e
        if st.st_size == 0:
            raise MetadataExtractionError(f"{path} is empty")

        track_id = track_id_for(path)
        modified_at = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)
        added_at = datetime.now(tz=timezone.utc)

        try:
            tags = AudioTags.from_file(path)
        except (TagReadError, UnsupportedTagValueTypeError) as e:
            logger.debug(f"Failed to read tags of {path}, falling back to filename: {e}")
            return Track(
                id=track_id,
                source_id=self.source_id,
                source_type=SOURCE_TYPE_FILESYSTEM,
                title=path.stem,
                artist=UNKNOWN_ARTIST,
                artist_id=artist_id_for(UNKNOWN_ARTIST),
                album=UNKNOWN_ALBUM,
                album_id=album_id_for(UNKNOWN_ALBUM, ""),
                format=extension.lstrip("."),
                file_path=path,
                file_size=st.st_size,
                added_at=added_at,
                modified_at=modified_at,
            )

        title = tags.title or path.stem
        artist = tags.artist or UNKNOWN_ARTIST
        album = tags.album or UNKNOWN_ALBUM
        album_artist = tags.albumartist or ""
        props = self.prober(path, tags.mutagen_file)

        artwork_path = None
        if tags.picture is not None and self.artwork_dir is not None:
            artwork_path = save_artwork(tags.picture, track_id, self.artwork_dir)

        return Track(
            id=track_id,
            source_id=self.source_id,
            source_type=SOURCE_TYPE_FILESYSTEM,
            title=title,
            artist=artist,
            artist_id=artist_id_for(artist),
            album=album,
            album_id=album_id_for(album, album_artist),
            album_artist=album_artist,
            genre="; ".join(tags.genre),
            year=tags.year or 0,
            track_number=tags.tracknumber or 0,
            disc_number=tags.discnumber or 0,
            duration=props.duration,
            format=extension.lstrip("."),
            bit_rate=props.bit_rate,
            sample_rate=props.sample_rate,
            file_path=path,
            file_size=st.st_size,
            artwork_path=artwork_path,
            added_at=added_at,
            modified_at=modified_at,
        )


class ExtractorRegistry:
    """Dispatches extraction to the extractor registered for a file's extension."""

    def __init__(self) -> None:
        self._extractors: dict[str, Extractor] = {}

    def register(self, extension: str, extractor: Extractor) -> None:
        self._extractors[normalize_extension(extension)] = extractor

    def get_extractor(self, path: Path) -> Extractor:
        extension = normalize_extension(path.suffix)
        try:
            return self._extractors[extension]
        except KeyError as e:
            raise UnsupportedFormatError(
                f"No extractor registered for {extension or '(none)'}: {path}"
            ) from e

    def supports_file(self, path: Path) -> bool:
        return normalize_extension(path.suffix) in self._extractors

    def supports_format(self, extension: str) -> bool:
        return normalize_extension(extension) in self._extractors

    def supported_formats(self) -> list[str]:
        return sorted(self._extractors)

    def extract(self, path: Path) -> Track:
        return self.get_extractor(path).extract(path)


def default_extractor_registry(artwork_dir: Path | None = None) -> ExtractorRegistry:
    registry = ExtractorRegistry()
    extractor = TagExtractor(artwork_dir=artwork_dir)
    for ext in SUPPORTED_AUDIO_EXTENSIONS:
        registry.register(ext, extractor)
    return registry
