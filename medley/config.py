"""
The config module provides the configuration schema and parsing logic.

The configuration file declares the music sources to index. Invalid configurations produce detailed
errors, and unrecognized keys produce a warning.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import appdirs
import tomllib

from medley.common import MedleyExpectedError, normalize_extension, uniq
from medley.tracks import SOURCE_TYPE_API_SELFHOSTED, SOURCE_TYPE_FILESYSTEM, SourceType

XDG_CONFIG_MEDLEY = Path(appdirs.user_config_dir("medley"))
CONFIG_PATH = XDG_CONFIG_MEDLEY / "config.toml"

XDG_CACHE_MEDLEY = Path(appdirs.user_cache_dir("medley"))

DEFAULT_SUPPORTED_FORMATS = [".mp3", ".flac", ".m4a", ".ogg"]

logger = logging.getLogger(__name__)


class ConfigNotFoundError(MedleyExpectedError):
    pass


class ConfigDecodeError(MedleyExpectedError):
    pass


class MissingConfigKeyError(MedleyExpectedError):
    pass


class InvalidConfigValueError(MedleyExpectedError, ValueError):
    pass


@dataclass(frozen=True)
class FilesystemSourceConfig:
    id: str
    name: str
    type: SourceType
    enabled: bool
    # The scan walks every root in order. Browsing uses the first.
    root_paths: list[Path]
    # Accepted for compatibility with existing configurations. Nothing watches the roots.
    watch_for_changes: bool
    supported_formats: list[str]

    @property
    def root_path(self) -> Path:
        return self.root_paths[0]


@dataclass(frozen=True)
class Config:
    # Where embedded cover art is written during scans.
    artwork_dir: Path
    # Maximum parallel source scans. None means one thread per source.
    max_scan_workers: int | None
    sources: list[FilesystemSourceConfig]

    @property
    def enabled_sources(self) -> list[FilesystemSourceConfig]:
        return [s for s in self.sources if s.enabled]

    @classmethod
    def parse(cls, config_path_override: Path | None = None) -> Config:
        # As we parse, delete consumed values from the data dictionary. If any are left over at the
        # end of the config, warn that unknown config keys were found.
        cfgpath = config_path_override or CONFIG_PATH
        try:
            with cfgpath.open("rb") as fp:
                data = tomllib.load(fp)
        except FileNotFoundError as e:
            raise ConfigNotFoundError(f"Configuration file not found ({cfgpath})") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigDecodeError(
                f"Failed to decode configuration file: invalid TOML: {e}"
            ) from e

        try:
            artwork_dir = Path(data["artwork_dir"]).expanduser()
            del data["artwork_dir"]
        except KeyError:
            artwork_dir = XDG_CACHE_MEDLEY / "artwork"
        except (TypeError, ValueError) as e:
            raise InvalidConfigValueError(
                f"Invalid value for artwork_dir in configuration file ({cfgpath}): must be a path"
            ) from e

        max_scan_workers: int | None = None
        try:
            max_scan_workers = data["max_scan_workers"]
            del data["max_scan_workers"]
            if not isinstance(max_scan_workers, int) or isinstance(max_scan_workers, bool):
                raise ValueError(f"must be an integer: got {type(max_scan_workers)}")
            if max_scan_workers <= 0:
                raise ValueError(f"must be a positive integer: got {max_scan_workers}")
        except KeyError:
            pass
        except ValueError as e:
            raise InvalidConfigValueError(
                f"Invalid value for max_scan_workers in configuration file ({cfgpath}): must be a positive integer"
            ) from e

        raw_sources = data.pop("sources", [])
        if not isinstance(raw_sources, list):
            raise InvalidConfigValueError(
                f"Invalid value for sources in configuration file ({cfgpath}): must be a list of tables"
            )
        sources: list[FilesystemSourceConfig] = []
        seen_ids: set[str] = set()
        for i, entry in enumerate(raw_sources):
            if not isinstance(entry, dict):
                raise InvalidConfigValueError(
                    f"Invalid value for sources[{i}] in configuration file ({cfgpath}): must be a table"
                )
            source = _parse_source(entry, f"sources[{i}]", cfgpath)
            if source.id in seen_ids:
                raise InvalidConfigValueError(
                    f"Invalid value for sources[{i}].id in configuration file ({cfgpath}): duplicate source id {source.id}"
                )
            seen_ids.add(source.id)
            sources.append(source)
            # Whatever the source parser did not consume is unrecognized.
            if entry:
                data[f"sources[{i}]"] = entry

        if data:
            unrecognized_accessors: list[str] = []
            # Do a DFS over the data keys to assemble the map of unknown keys. State is a tuple of
            # ("accessor", node).
            dfs_state: deque[tuple[str, Any]] = deque([("", data)])
            while dfs_state:
                accessor, node = dfs_state.pop()
                if isinstance(node, dict):
                    for k, v in node.items():
                        child_accessor = k if not accessor else f"{accessor}.{k}"
                        dfs_state.append((child_accessor, v))
                    continue
                unrecognized_accessors.append(accessor)
            logger.warning(
                f"Unrecognized options found in configuration file: {', '.join(unrecognized_accessors)}"
            )

        return Config(
            artwork_dir=artwork_dir,
            max_scan_workers=max_scan_workers,
            sources=sources,
        )


def _parse_source(data: dict[str, Any], accessor: str, cfgpath: Path) -> FilesystemSourceConfig:
    try:
        id = data["id"]
        del data["id"]
        if not isinstance(id, str) or not id:
            raise ValueError(f"must be a non-empty string: got {id!r}")
    except KeyError as e:
        raise MissingConfigKeyError(
            f"Missing key {accessor}.id in configuration file ({cfgpath})"
        ) from e
    except ValueError as e:
        raise InvalidConfigValueError(
            f"Invalid value for {accessor}.id in configuration file ({cfgpath}): {e}"
        ) from e

    try:
        name = data["name"]
        del data["name"]
        if not isinstance(name, str):
            raise ValueError(f"must be a string: got {type(name)}")
    except KeyError:
        name = id
    except ValueError as e:
        raise InvalidConfigValueError(
            f"Invalid value for {accessor}.name in configuration file ({cfgpath}): {e}"
        ) from e

    source_type: SourceType = SOURCE_TYPE_FILESYSTEM
    try:
        raw_type = data["type"]
        del data["type"]
        if raw_type == SOURCE_TYPE_API_SELFHOSTED:
            raise ValueError(f"source type {raw_type} is not supported yet")
        if raw_type != SOURCE_TYPE_FILESYSTEM:
            raise ValueError(f"must be {SOURCE_TYPE_FILESYSTEM}: got {raw_type!r}")
    except KeyError:
        pass
    except ValueError as e:
        raise InvalidConfigValueError(
            f"Invalid value for {accessor}.type in configuration file ({cfgpath}): {e}"
        ) from e

    enabled = _parse_bool(data, "enabled", True, accessor, cfgpath)
    watch_for_changes = _parse_bool(data, "watch_for_changes", False, accessor, cfgpath)

    root_paths: list[Path] = []
    try:
        if "root_paths" in data:
            raw_paths = data["root_paths"]
            del data["root_paths"]
            if not isinstance(raw_paths, list) or not raw_paths:
                raise ValueError(f"must be a non-empty list of paths: got {raw_paths!r}")
        else:
            raw_paths = [data["root_path"]]
            del data["root_path"]
        for p in raw_paths:
            if not isinstance(p, str):
                raise ValueError(f"each root path must be a string: got {type(p)}")
            root_paths.append(Path(p).expanduser())
    except KeyError as e:
        raise MissingConfigKeyError(
            f"Missing key {accessor}.root_paths in configuration file ({cfgpath})"
        ) from e
    except ValueError as e:
        raise InvalidConfigValueError(
            f"Invalid value for {accessor}.root_paths in configuration file ({cfgpath}): {e}"
        ) from e

    try:
        supported_formats = data["supported_formats"]
        del data["supported_formats"]
        if not isinstance(supported_formats, list):
            raise ValueError(f"must be a list of strings: got {type(supported_formats)}")
        for f in supported_formats:
            if not isinstance(f, str):
                raise ValueError(f"each format must be a string: got {type(f)}")
        supported_formats = uniq([normalize_extension(f) for f in supported_formats])
    except KeyError:
        supported_formats = list(DEFAULT_SUPPORTED_FORMATS)
    except ValueError as e:
        raise InvalidConfigValueError(
            f"Invalid value for {accessor}.supported_formats in configuration file ({cfgpath}): {e}"
        ) from e

    return FilesystemSourceConfig(
        id=id,
        name=name,
        type=source_type,
        enabled=enabled,
        root_paths=root_paths,
        watch_for_changes=watch_for_changes,
        supported_formats=supported_formats,
    )


def _parse_bool(data: dict[str, Any], key: str, default: bool, accessor: str, cfgpath: Path) -> bool:
    try:
        value = data[key]
        del data[key]
    except KeyError:
        return default
    if not isinstance(value, bool):
        raise InvalidConfigValueError(
            f"Invalid value for {accessor}.{key} in configuration file ({cfgpath}): must be a bool: got {type(value)}"
        )
    return value
