"""
The cli module defines Medley's CLI interface. It does not have any domain logic of its own. It is
dedicated to parsing, resolving arguments, and delegating to the appropriate module.

The catalog lives in memory only, so every command that reads tracks scans the sources first.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click

from medley.config import Config
from medley.library import Library
from medley.tracks import SEARCH_FIELDS, SORT_FIELDS, QueryOptions, SearchOptions

logger = logging.getLogger(__name__)


@dataclass
class Context:
    config: Config
    library: Library


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def _scanned_library(ctx: Context) -> Library:
    ctx.library.scan_all_sources()
    return ctx.library


# fmt: off
@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Emit verbose logging.")
@click.option("--config", "-c", type=click.Path(path_type=Path), help="Override the config file location.")
@click.pass_context
# fmt: on
def cli(cc: click.Context, verbose: bool, config: Path | None = None) -> None:
    """A music library over your local folders."""
    c = Config.parse(config_path_override=config)
    cc.obj = Context(config=c, library=Library.from_config(c))
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.group()
def sources() -> None:
    """Inspect the configured sources."""


@sources.command(name="list")
@click.pass_obj
def list_sources(ctx: Context) -> None:
    """List the enabled sources."""
    configs = {s.id: s for s in ctx.config.sources}
    _echo_json(
        [
            {
                **s.dump(),
                "name": configs[s.id].name,
                "root_paths": [str(p) for p in configs[s.id].root_paths],
            }
            for s in sorted(ctx.library.get_sources(), key=lambda s: s.id)
        ]
    )


@cli.command()
@click.argument("source_id", type=str, required=False)
@click.pass_obj
def scan(ctx: Context, source_id: str | None) -> None:
    """Scan one source, or all of them, and print the resulting progress."""
    if source_id is None:
        ctx.library.scan_all_sources()
        progress = ctx.library.get_all_scan_progress()
        _echo_json({k: progress[k].dump() for k in sorted(progress)})
        return
    ctx.library.scan_source(source_id)
    _echo_json({source_id: ctx.library.get_scan_progress(source_id).dump()})


@cli.group()
def tracks() -> None:
    """List and search tracks."""


# fmt: off
@tracks.command(name="list")
@click.option("--sort", "sort_by", type=click.Choice(SORT_FIELDS), default="title", help="Field to sort by.")
@click.option("--desc", is_flag=True, help="Sort in descending order.")
@click.option("--limit", type=int, default=0, help="Maximum number of tracks per source (0 for all).")
@click.option("--offset", type=int, default=0, help="Number of tracks to skip per source.")
@click.pass_obj
# fmt: on
def list_tracks(ctx: Context, sort_by: str, desc: bool, limit: int, offset: int) -> None:
    """List all tracks."""
    options = QueryOptions(
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order="desc" if desc else "asc",
    )
    _echo_json([t.dump() for t in _scanned_library(ctx).get_all_tracks(options)])


# fmt: off
@tracks.command(name="search")
@click.argument("query", type=str, nargs=1)
@click.option("--field", "-f", "fields", type=click.Choice(SEARCH_FIELDS), multiple=True, help="Field to search (repeatable).")
@click.option("--sort", "sort_by", type=click.Choice(SORT_FIELDS), default="title", help="Field to sort by.")
@click.option("--desc", is_flag=True, help="Sort in descending order.")
@click.option("--limit", type=int, default=0, help="Maximum number of tracks per source (0 for all).")
@click.option("--offset", type=int, default=0, help="Number of tracks to skip per source.")
@click.pass_obj
# fmt: on
def search_tracks(
    ctx: Context,
    query: str,
    fields: tuple[str, ...],
    sort_by: str,
    desc: bool,
    limit: int,
    offset: int,
) -> None:
    """Search tracks by substring."""
    options = SearchOptions(
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order="desc" if desc else "asc",
        fields=list(fields),
    )
    _echo_json([t.dump() for t in _scanned_library(ctx).search_tracks(query, options)])


@tracks.command(name="print")
@click.argument("track_id", type=str, nargs=1)
@click.pass_obj
def print_track(ctx: Context, track_id: str) -> None:
    """Print a single track."""
    _echo_json(_scanned_library(ctx).get_track_by_id(track_id).dump())


@cli.group()
def albums() -> None:
    """Browse albums."""


@albums.command(name="list")
@click.pass_obj
def list_albums(ctx: Context) -> None:
    """List all albums."""
    _echo_json([a.dump() for a in _scanned_library(ctx).get_albums()])


@albums.command(name="tracks")
@click.argument("album_id", type=str, nargs=1)
@click.pass_obj
def album_tracks(ctx: Context, album_id: str) -> None:
    """List the tracks of an album."""
    _echo_json([t.dump() for t in _scanned_library(ctx).get_tracks_by_album(album_id)])


@cli.group()
def artists() -> None:
    """Browse artists."""


@artists.command(name="list")
@click.pass_obj
def list_artists(ctx: Context) -> None:
    """List all artists."""
    _echo_json([a.dump() for a in _scanned_library(ctx).get_artists()])


@artists.command(name="tracks")
@click.argument("artist_id", type=str, nargs=1)
@click.pass_obj
def artist_tracks(ctx: Context, artist_id: str) -> None:
    """List the tracks of an artist."""
    _echo_json([t.dump() for t in _scanned_library(ctx).get_tracks_by_artist(artist_id)])


@cli.command()
@click.argument("source_id", type=str, nargs=1)
@click.argument("relative_path", type=str, default="")
@click.pass_obj
def browse(ctx: Context, source_id: str, relative_path: str) -> None:
    """List a directory of a source, relative to its root."""
    _echo_json(ctx.library.browse_directory(source_id, relative_path).dump())
