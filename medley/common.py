"""
The common module is our ugly grab bag of common toys: the error hierarchy, logging setup, and the
reader/writer lock that the caches synchronize on.
"""

from __future__ import annotations

import contextlib
import hashlib
import logging
import logging.handlers
import os
import sys
import threading
from collections.abc import Iterator
from pathlib import Path
from typing import TypeVar

import appdirs

with (Path(__file__).parent / ".version").open("r") as fp:
    VERSION = fp.read().strip()

T = TypeVar("T")


class MedleyError(Exception):
    pass


class MedleyExpectedError(MedleyError):
    """These errors are printed without traceback."""

    pass


class NotFoundError(MedleyExpectedError):
    pass


class AlreadyExistsError(MedleyExpectedError):
    pass


class SourceNotFoundError(NotFoundError):
    pass


class ScanInProgressError(MedleyExpectedError):
    pass


class ScanCancelledError(MedleyExpectedError):
    pass


class UnsupportedFormatError(MedleyExpectedError):
    pass


class MetadataExtractionError(MedleyExpectedError):
    pass


def uniq(xs: list[T]) -> list[T]:
    rv: list[T] = []
    seen: set[T] = set()
    for x in xs:
        if x not in seen:
            rv.append(x)
            seen.add(x)
    return rv


def short_sha256(value: str) -> str:
    """First 8 bytes of the SHA-256 digest, hex-encoded."""
    return hashlib.sha256(value.encode()).hexdigest()[:16]


def normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


class ReadWriteLock:
    """
    A shared-read/exclusive-write lock. Any number of readers may hold the lock at once; a writer
    holds it alone. Waiting writers block new readers, so a steady stream of queries cannot starve
    a scan that wants to insert.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextlib.contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextlib.contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


__logging_initialized: set[str | None] = set()


def initialize_logging(logger_name: str | None = None) -> None:
    if logger_name in __logging_initialized:
        return
    __logging_initialized.add(logger_name)

    logger = logging.getLogger(logger_name)

    # appdirs by default has Unix log to $XDG_CACHE_HOME, but I'd rather write logs to $XDG_STATE_HOME.
    log_home = Path(appdirs.user_state_dir("medley"))
    if appdirs.system == "darwin":
        log_home = Path(appdirs.user_log_dir("medley"))

    # Useful for debugging scan threads, since pytest doesn't capture their output reliably.
    log_despite_testing = os.environ.get("LOG_TEST", False)

    # Add a logging handler for stdout unless we are testing. Pytest
    # captures logging output on its own, so by default, we do not attach our own.
    if "pytest" not in sys.modules or log_despite_testing:  # pragma: no cover
        log_home.mkdir(parents=True, exist_ok=True)
        log_file = log_home / "medley.log"
        logger.setLevel(logging.INFO)

        simple_formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        verbose_formatter = logging.Formatter(
            "[ts=%(asctime)s.%(msecs)03d] [pid=%(process)d] [thread=%(threadName)s] [src=%(name)s:%(lineno)s] %(levelname)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(simple_formatter if not log_despite_testing else verbose_formatter)
        logger.addHandler(stream_handler)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=20 * 1024 * 1024,
            backupCount=10,
        )
        file_handler.setFormatter(verbose_formatter)
        logger.addHandler(file_handler)
