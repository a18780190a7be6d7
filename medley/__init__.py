from medley.audiotags import SUPPORTED_AUDIO_EXTENSIONS, AudioTags
from medley.cache import TrackCache
from medley.common import (
    VERSION,
    AlreadyExistsError,
    MedleyError,
    MedleyExpectedError,
    MetadataExtractionError,
    NotFoundError,
    ReadWriteLock,
    ScanCancelledError,
    ScanInProgressError,
    SourceNotFoundError,
    UnsupportedFormatError,
    initialize_logging,
)
from medley.config import Config, FilesystemSourceConfig
from medley.extractor import (
    AudioProperties,
    Extractor,
    ExtractorRegistry,
    TagExtractor,
    default_extractor_registry,
    probe_audio_properties,
)
from medley.library import BrowsingNotSupportedError, DirectoryContents, Library, SourceInfo
from medley.repository import (
    DirectoryBrowser,
    FilesystemTrackRepository,
    InvalidBrowsePathError,
    ScanProgress,
    TrackRepository,
    build_repository,
)
from medley.scanner import DirectoryListError, DirectoryScanError, DirectoryScanner, FileNode
from medley.tracks import (
    Album,
    AlbumNotFoundError,
    Artist,
    ArtistNotFoundError,
    InvalidQueryOptionsError,
    QueryOptions,
    SearchOptions,
    Track,
    TrackAlreadyExistsError,
    TrackNotFoundError,
)

__all__ = [
    # Plumbing
    "initialize_logging",
    "VERSION",
    # Errors
    "MedleyError",
    "MedleyExpectedError",
    "NotFoundError",
    "AlreadyExistsError",
    "SourceNotFoundError",
    "TrackNotFoundError",
    "TrackAlreadyExistsError",
    "AlbumNotFoundError",
    "ArtistNotFoundError",
    "ScanInProgressError",
    "ScanCancelledError",
    "UnsupportedFormatError",
    "MetadataExtractionError",
    "DirectoryScanError",
    "DirectoryListError",
    "InvalidBrowsePathError",
    "BrowsingNotSupportedError",
    "InvalidQueryOptionsError",
    # Configuration
    "Config",
    "FilesystemSourceConfig",
    # Tracks
    "Track",
    "Album",
    "Artist",
    "QueryOptions",
    "SearchOptions",
    # Tagging
    "AudioTags",
    "SUPPORTED_AUDIO_EXTENSIONS",
    # Extraction
    "Extractor",
    "ExtractorRegistry",
    "TagExtractor",
    "AudioProperties",
    "default_extractor_registry",
    "probe_audio_properties",
    # Scanning
    "DirectoryScanner",
    "FileNode",
    # Storage
    "ReadWriteLock",
    "TrackCache",
    # Sources
    "TrackRepository",
    "DirectoryBrowser",
    "FilesystemTrackRepository",
    "ScanProgress",
    "build_repository",
    # Library
    "Library",
    "SourceInfo",
    "DirectoryContents",
]

initialize_logging(__name__)
