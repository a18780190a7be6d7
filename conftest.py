import logging
import wave
from collections.abc import Iterator
from pathlib import Path

import mutagen.id3
import mutagen.wave
import pytest
from click.testing import CliRunner

from medley.config import Config, FilesystemSourceConfig

logger = logging.getLogger(__name__)

# A 1x1 transparent PNG.
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)

SAMPLE_RATE = 8000


def make_wav(
    path: Path,
    *,
    title: str | None = None,
    artist: str | None = None,
    album: str | None = None,
    album_artist: str | None = None,
    genre: str | None = None,
    year: str | None = None,
    track: str | None = None,
    disc: str | None = None,
    cover: bytes | None = None,
    cover_mime: str = "image/png",
    seconds: float = 1.0,
) -> Path:
    """Write a silent mono WAV file, with ID3 tags if any are given."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(SAMPLE_RATE)
        w.writeframes(b"\x00\x00" * int(SAMPLE_RATE * seconds))

    frames: list[mutagen.id3.Frame] = []
    if title is not None:
        frames.append(mutagen.id3.TIT2(encoding=3, text=[title]))
    if artist is not None:
        frames.append(mutagen.id3.TPE1(encoding=3, text=[artist]))
    if album is not None:
        frames.append(mutagen.id3.TALB(encoding=3, text=[album]))
    if album_artist is not None:
        frames.append(mutagen.id3.TPE2(encoding=3, text=[album_artist]))
    if genre is not None:
        frames.append(mutagen.id3.TCON(encoding=3, text=[genre]))
    if year is not None:
        frames.append(mutagen.id3.TDRC(encoding=3, text=[year]))
    if track is not None:
        frames.append(mutagen.id3.TRCK(encoding=3, text=[track]))
    if disc is not None:
        frames.append(mutagen.id3.TPOS(encoding=3, text=[disc]))
    if cover is not None:
        frames.append(mutagen.id3.APIC(encoding=3, mime=cover_mime, type=3, desc="Cover", data=cover))
    if frames:
        m = mutagen.wave.WAVE(path)
        m.add_tags()
        for f in frames:
            m.tags.add(f)  # type: ignore
        m.save()
    return path


@pytest.fixture(autouse=True)
def debug_logging() -> None:
    logging.getLogger().setLevel(logging.DEBUG)


@pytest.fixture()
def isolated_dir() -> Iterator[Path]:
    with CliRunner().isolated_filesystem():
        yield Path.cwd()


@pytest.fixture()
def music_dir(isolated_dir: Path) -> Path:
    """A source directory with two albums and some files the scanner must ignore."""
    d = isolated_dir / "music"
    make_wav(
        d / "Blackpink - Kill This Love" / "01.wav",
        title="Kill This Love",
        artist="BLACKPINK",
        album="Kill This Love",
        album_artist="BLACKPINK",
        genre="K-Pop",
        year="2019",
        track="1/5",
        disc="1/1",
        cover=PNG_BYTES,
    )
    make_wav(
        d / "Blackpink - Kill This Love" / "02.wav",
        title="Don't Know What To Do",
        artist="BLACKPINK",
        album="Kill This Love",
        album_artist="BLACKPINK",
        genre="K-Pop",
        year="2019",
        track="2/5",
        disc="1/1",
    )
    make_wav(
        d / "NewJeans - Get Up" / "01.wav",
        title="New Jeans",
        artist="NewJeans",
        album="Get Up",
        year="2023-07-21",
        track="1",
    )
    (d / "NewJeans - Get Up" / "cover.jpg").write_bytes(PNG_BYTES)
    (d / "NewJeans - Get Up" / ".DS_Store").write_bytes(b"junk")
    (d / "NewJeans - Get Up" / "._01.wav").write_bytes(b"junk")
    return d


@pytest.fixture()
def config(isolated_dir: Path, music_dir: Path) -> Config:
    return Config(
        artwork_dir=isolated_dir / "artwork",
        max_scan_workers=None,
        sources=[
            FilesystemSourceConfig(
                id="main",
                name="Main Library",
                type="filesystem",
                enabled=True,
                root_paths=[music_dir],
                watch_for_changes=False,
                supported_formats=[".wav", ".flac"],
            ),
        ],
    )


@pytest.fixture()
def config_path(isolated_dir: Path, music_dir: Path) -> Path:
    """The same configuration as `config`, written to disk for the CLI."""
    path = isolated_dir / "config.toml"
    path.write_text(
        f"""
        artwork_dir = "{isolated_dir / 'artwork'}"

        [[sources]]
        id = "main"
        name = "Main Library"
        root_paths = ["{music_dir}"]
        supported_formats = [".wav", ".flac"]
        """
    )
    return path
