from pathlib import Path

import pytest

from conftest import PNG_BYTES, make_wav
from medley.audiotags import AudioTags, TagReadError, _parse_position, _parse_year
from medley.common import UnsupportedFormatError


def test_getters_id3(isolated_dir: Path) -> None:
    p = make_wav(
        isolated_dir / "01.wav",
        title="Kill This Love",
        artist="BLACKPINK",
        album="Kill This Love",
        album_artist="BLACKPINK",
        genre="K-Pop; Dance",
        year="2019-04-05",
        track="3/12",
        disc="1/2",
        cover=PNG_BYTES,
    )
    af = AudioTags.from_file(p)
    assert af.title == "Kill This Love"
    assert af.artist == "BLACKPINK"
    assert af.album == "Kill This Love"
    assert af.albumartist == "BLACKPINK"
    assert af.genre == ["K-Pop", "Dance"]
    assert af.year == 2019
    assert af.tracknumber == 3
    assert af.discnumber == 1
    assert af.picture is not None
    assert af.picture.data == PNG_BYTES
    assert af.picture.mime == "image/png"


def test_untagged_file_has_empty_fields(isolated_dir: Path) -> None:
    af = AudioTags.from_file(make_wav(isolated_dir / "01.wav"))
    assert af.title is None
    assert af.artist is None
    assert af.genre == []
    assert af.picture is None


def test_unsupported_extension(isolated_dir: Path) -> None:
    p = isolated_dir / "cover.jpg"
    p.write_bytes(PNG_BYTES)
    with pytest.raises(UnsupportedFormatError):
        AudioTags.from_file(p)


def test_garbage_file(isolated_dir: Path) -> None:
    p = isolated_dir / "b.flac"
    p.write_bytes(b"this is not a flac file")
    with pytest.raises(TagReadError):
        AudioTags.from_file(p)


def test_parse_year() -> None:
    assert _parse_year("2019") == 2019
    assert _parse_year("2019-04-05T10:00:00") == 2019
    assert _parse_year("lalala") is None
    assert _parse_year(None) is None


def test_parse_position() -> None:
    assert _parse_position("3") == 3
    assert _parse_position("3/12") == 3
    assert _parse_position(" 4 / 12") == 4
    assert _parse_position("A1") is None
    assert _parse_position("") is None
