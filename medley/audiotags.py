"""
The audiotags module abstracts over tag reading for the audio formats that mutagen understands,
exposing a single standard interface for all audio files.

We read three tag container families: ID3 (MP3, WAV), MP4 atoms (M4A and friends), and Vorbis
comments (FLAC, Ogg Vorbis, Opus). Embedded cover art is surfaced as raw bytes plus a MIME type;
persisting it is the extractor's job.
"""

from __future__ import annotations

import base64
import binascii
import contextlib
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import mutagen
import mutagen.flac
import mutagen.id3
import mutagen.mp4

from medley.common import MedleyExpectedError, UnsupportedFormatError

logger = logging.getLogger(__name__)

TAG_SPLITTER_REGEX = re.compile(r" \\\\ | / |; ?| vs\. ")
YEAR_REGEX = re.compile(r"\d{4}$")
DATE_REGEX = re.compile(r"(\d{4})-\d{2}-\d{2}")

SUPPORTED_AUDIO_EXTENSIONS = [
    ".mp3",
    ".m4a",
    ".m4b",
    ".m4p",
    ".flac",
    ".ogg",
    ".oga",
    ".opus",
    ".wav",
]

# ID3 picture type for the front cover.
_ID3_FRONT_COVER = 3


class TagReadError(MedleyExpectedError):
    pass


class UnsupportedTagValueTypeError(MedleyExpectedError):
    pass


@dataclass
class Picture:
    data: bytes
    mime: str


@dataclass
class AudioTags:
    title: str | None
    artist: str | None
    album: str | None
    albumartist: str | None
    genre: list[str]
    year: int | None
    tracknumber: int | None
    discnumber: int | None
    picture: Picture | None

    path: Path
    # The underlying mutagen file, kept so that audio properties can be probed without reopening.
    mutagen_file: Any = None

    @classmethod
    def from_file(cls, p: Path) -> AudioTags:
        """Read the tags of an audio file on disk."""
        if not any(p.suffix.lower() == ext for ext in SUPPORTED_AUDIO_EXTENSIONS):
            raise UnsupportedFormatError(f"{p.suffix} not a supported filetype")
        try:
            m = mutagen.File(p)  # type: ignore
        except mutagen.MutagenError as e:  # type: ignore
            raise TagReadError(f"Failed to open file: {e}") from e
        if m is None:
            raise TagReadError(f"{p} is not a recognized audio file")

        t = m.tags
        if t is None:
            # A valid stream without any tag container. Every field falls back.
            return AudioTags(
                title=None,
                artist=None,
                album=None,
                albumartist=None,
                genre=[],
                year=None,
                tracknumber=None,
                discnumber=None,
                picture=_get_picture(m),
                path=p,
                mutagen_file=m,
            )
        if isinstance(t, mutagen.id3.ID3):
            return AudioTags(
                title=_get_tag(t, ["TIT2"]),
                artist=_get_tag(t, ["TPE1"]),
                album=_get_tag(t, ["TALB"]),
                albumartist=_get_tag(t, ["TPE2"]),
                genre=_split_tag(_get_tag(t, ["TCON"], split=True)),
                year=_parse_year(_get_tag(t, ["TDRC", "TYER"])),
                # ID3 returns trackno/discno tags as no/total. We have to parse.
                tracknumber=_parse_position(_get_tag(t, ["TRCK"], first=True)),
                discnumber=_parse_position(_get_tag(t, ["TPOS"], first=True)),
                picture=_get_picture(m),
                path=p,
                mutagen_file=m,
            )
        if isinstance(t, mutagen.mp4.MP4Tags):
            tracknumber = discnumber = None
            with contextlib.suppress(ValueError, TypeError):
                tracknumber = _parse_int(_get_tuple_tag(t, ["trkn"])[0])
            with contextlib.suppress(ValueError, TypeError):
                discnumber = _parse_int(_get_tuple_tag(t, ["disk"])[0])
            return AudioTags(
                title=_get_tag(t, ["\xa9nam"]),
                artist=_get_tag(t, ["\xa9ART"]),
                album=_get_tag(t, ["\xa9alb"]),
                albumartist=_get_tag(t, ["aART"]),
                genre=_split_tag(_get_tag(t, ["\xa9gen"], split=True)),
                year=_parse_year(_get_tag(t, ["\xa9day"])),
                tracknumber=tracknumber,
                discnumber=discnumber,
                picture=_get_picture(m),
                path=p,
                mutagen_file=m,
            )
        if isinstance(t, mutagen._vorbis.VCommentDict):  # type: ignore
            return AudioTags(
                title=_get_tag(t, ["title"]),
                artist=_get_tag(t, ["artist"]),
                album=_get_tag(t, ["album"]),
                albumartist=_get_tag(t, ["albumartist", "album artist"]),
                genre=_split_tag(_get_tag(t, ["genre"], split=True)),
                year=_parse_year(_get_tag(t, ["date", "year"])),
                tracknumber=_parse_position(_get_tag(t, ["tracknumber"], first=True)),
                discnumber=_parse_position(_get_tag(t, ["discnumber"], first=True)),
                picture=_get_picture(m),
                path=p,
                mutagen_file=m,
            )
        raise TagReadError(f"{p} has an unsupported tag container: {type(t).__name__}")


def _get_picture(m: Any) -> Picture | None:
    """Return the embedded front cover, falling back to the first picture of any type."""
    t = m.tags
    if isinstance(t, mutagen.id3.ID3):
        frames = t.getall("APIC")
        if not frames:
            return None
        frame = next((f for f in frames if f.type == _ID3_FRONT_COVER), frames[0])
        return Picture(data=frame.data, mime=frame.mime)
    if isinstance(t, mutagen.mp4.MP4Tags):
        covers = t.get("covr")
        if not covers:
            return None
        cover = covers[0]
        mime = "image/png" if cover.imageformat == mutagen.mp4.MP4Cover.FORMAT_PNG else "image/jpeg"
        return Picture(data=bytes(cover), mime=mime)
    if isinstance(m, mutagen.flac.FLAC):
        if not m.pictures:
            return None
        pic = next((p for p in m.pictures if p.type == _ID3_FRONT_COVER), m.pictures[0])
        return Picture(data=pic.data, mime=pic.mime)
    if t is not None and isinstance(t, mutagen._vorbis.VCommentDict):  # type: ignore
        for raw in t.get("metadata_block_picture", []):
            try:
                pic = mutagen.flac.Picture(base64.b64decode(raw))
            except (binascii.Error, mutagen.flac.error) as e:
                logger.debug(f"Skipping malformed embedded picture in {m.filename}: {e}")
                continue
            return Picture(data=pic.data, mime=pic.mime)
    return None


def _split_tag(t: str | None) -> list[str]:
    return TAG_SPLITTER_REGEX.split(t) if t else []


def _get_tag(t: Any, keys: list[str], *, split: bool = False, first: bool = False) -> str | None:
    if not t:
        return None
    for k in keys:
        try:
            values: list[str] = []
            raw_values = t[k].text if isinstance(t, mutagen.id3.ID3) else t[k]
            for val in raw_values:
                if isinstance(val, str):
                    values.extend(_split_tag(val) if split else [val])
                elif isinstance(val, bytes):
                    values.extend(_split_tag(val.decode()) if split else [val.decode()])
                elif isinstance(val, mutagen.id3.ID3TimeStamp):  # type: ignore
                    values.extend(_split_tag(val.text) if split else [val.text])
                else:
                    raise UnsupportedTagValueTypeError(
                        f"Encountered a tag value of type {type(val)}"
                    )
            if first:
                return values[0] if values else None
            return r" \\ ".join(values)
        except (KeyError, ValueError):
            pass
    return None


def _get_tuple_tag(t: Any, keys: list[str]) -> tuple[int, int] | tuple[None, None]:
    if not t:
        return None, None
    for k in keys:
        try:
            for val in t[k]:
                if isinstance(val, tuple):
                    return val  # type: ignore
                else:
                    raise UnsupportedTagValueTypeError(
                        f"Encountered a tag value of type {type(val)}: expected tuple"
                    )
        except (KeyError, ValueError):
            pass
    return None, None


def _parse_int(x: Any) -> int | None:
    if x is None:
        return None
    try:
        return int(x)
    except ValueError:
        return None


def _parse_position(value: str | None) -> int | None:
    """Parse `3` and `3/12` style track and disc positions."""
    if not value:
        return None
    return _parse_int(value.split("/", 1)[0].strip())


def _parse_year(value: str | None) -> int | None:
    if not value:
        return None
    if YEAR_REGEX.match(value):
        return int(value)
    # There may be a time value after the date... allow that and other crap.
    if m := DATE_REGEX.match(value):
        return int(m[1])
    return None
