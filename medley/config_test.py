import tempfile
from pathlib import Path

import pytest

from medley.config import (
    XDG_CACHE_MEDLEY,
    Config,
    ConfigDecodeError,
    ConfigNotFoundError,
    FilesystemSourceConfig,
    InvalidConfigValueError,
    MissingConfigKeyError,
)


def _write(tmpdir: str, text: str) -> Path:
    path = Path(tmpdir) / "config.toml"
    with path.open("w") as fp:
        fp.write(text)
    return path


def test_config_minimal() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(
            tmpdir,
            """
            [[sources]]
            id = "main"
            root_path = "~/Music"
            """,
        )
        c = Config.parse(config_path_override=path)
        assert c == Config(
            artwork_dir=XDG_CACHE_MEDLEY / "artwork",
            max_scan_workers=None,
            sources=[
                FilesystemSourceConfig(
                    id="main",
                    name="main",
                    type="filesystem",
                    enabled=True,
                    root_paths=[Path.home() / "Music"],
                    watch_for_changes=False,
                    supported_formats=[".mp3", ".flac", ".m4a", ".ogg"],
                ),
            ],
        )


def test_config_full() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        artwork_dir = Path(tmpdir) / "artwork"
        path = _write(
            tmpdir,
            f"""
            artwork_dir = "{artwork_dir}"
            max_scan_workers = 2

            [[sources]]
            id = "main"
            name = "Main Library"
            type = "filesystem"
            enabled = true
            root_paths = ["~/Music", "~/More Music"]
            watch_for_changes = true
            supported_formats = ["MP3", ".Flac", "mp3"]

            [[sources]]
            id = "old"
            enabled = false
            root_paths = ["/mnt/old"]
            """,
        )
        c = Config.parse(config_path_override=path)
        assert c == Config(
            artwork_dir=artwork_dir,
            max_scan_workers=2,
            sources=[
                FilesystemSourceConfig(
                    id="main",
                    name="Main Library",
                    type="filesystem",
                    enabled=True,
                    root_paths=[Path.home() / "Music", Path.home() / "More Music"],
                    watch_for_changes=True,
                    supported_formats=[".mp3", ".flac"],
                ),
                FilesystemSourceConfig(
                    id="old",
                    name="old",
                    type="filesystem",
                    enabled=False,
                    root_paths=[Path("/mnt/old")],
                    watch_for_changes=False,
                    supported_formats=[".mp3", ".flac", ".m4a", ".ogg"],
                ),
            ],
        )
        assert [s.id for s in c.enabled_sources] == ["main"]
        assert c.sources[0].root_path == Path.home() / "Music"


def test_config_not_found() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ConfigNotFoundError):
            Config.parse(config_path_override=Path(tmpdir) / "config.toml")


def test_config_invalid_toml() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, "lalala = ")
        with pytest.raises(ConfigDecodeError):
            Config.parse(config_path_override=path)


def test_config_missing_keys() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, '[[sources]]\nroot_path = "~/Music"\n')
        with pytest.raises(MissingConfigKeyError) as excinfo:
            Config.parse(config_path_override=path)
        assert "sources[0].id" in str(excinfo.value)

        path = _write(tmpdir, '[[sources]]\nid = "main"\n')
        with pytest.raises(MissingConfigKeyError) as excinfo:
            Config.parse(config_path_override=path)
        assert "sources[0].root_paths" in str(excinfo.value)


@pytest.mark.parametrize(
    ("text", "accessor"),
    [
        ("max_scan_workers = 0", "max_scan_workers"),
        ('max_scan_workers = "lots"', "max_scan_workers"),
        ("artwork_dir = 1", "artwork_dir"),
        ('sources = "main"', "sources"),
        ('[[sources]]\nid = 1\nroot_path = "/a"', "sources[0].id"),
        ('[[sources]]\nid = "a"\nname = 1\nroot_path = "/a"', "sources[0].name"),
        ('[[sources]]\nid = "a"\ntype = "ftp"\nroot_path = "/a"', "sources[0].type"),
        ('[[sources]]\nid = "a"\ntype = "api-selfhosted"\nroot_path = "/a"', "sources[0].type"),
        ('[[sources]]\nid = "a"\nenabled = "yes"\nroot_path = "/a"', "sources[0].enabled"),
        ('[[sources]]\nid = "a"\nroot_paths = []', "sources[0].root_paths"),
        ('[[sources]]\nid = "a"\nroot_paths = [1]', "sources[0].root_paths"),
        ('[[sources]]\nid = "a"\nroot_path = "/a"\nsupported_formats = ".mp3"', "sources[0].supported_formats"),
        ('[[sources]]\nid = "a"\nroot_path = "/a"\n[[sources]]\nid = "a"\nroot_path = "/b"', "sources[1].id"),
    ],
)
def test_config_invalid_values(text: str, accessor: str) -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, text)
        with pytest.raises(InvalidConfigValueError) as excinfo:
            Config.parse(config_path_override=path)
        assert f"Invalid value for {accessor} " in str(excinfo.value)


def test_config_unrecognized_keys_warn(caplog: pytest.LogCaptureFixture) -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(
            tmpdir,
            """
            lalala = 1
            [[sources]]
            id = "main"
            root_path = "~/Music"
            hahaha = true
            """,
        )
        Config.parse(config_path_override=path)
        assert "Unrecognized options found in configuration file: " in caplog.text
        assert "lalala" in caplog.text
        assert "sources[0].hahaha" in caplog.text
