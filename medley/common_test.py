import threading
import time

from medley.common import ReadWriteLock, normalize_extension, short_sha256, uniq


def test_uniq() -> None:
    assert uniq([3, 1, 3, 2, 1]) == [3, 1, 2]


def test_short_sha256() -> None:
    assert short_sha256("lalala") == short_sha256("lalala")
    assert len(short_sha256("lalala")) == 16


def test_normalize_extension() -> None:
    assert normalize_extension("FLAC") == ".flac"
    assert normalize_extension(".Mp3") == ".mp3"
    assert normalize_extension("") == ""


def test_read_write_lock_allows_concurrent_readers() -> None:
    lock = ReadWriteLock()
    inside = threading.Barrier(2, timeout=5)

    def reader() -> None:
        with lock.read():
            # Both readers must be inside the lock at once for the barrier to release.
            inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    assert not inside.broken


def test_read_write_lock_writer_is_exclusive() -> None:
    lock = ReadWriteLock()
    events: list[str] = []
    writer_inside = threading.Event()

    def writer() -> None:
        with lock.write():
            writer_inside.set()
            time.sleep(0.05)
            events.append("write")

    def reader() -> None:
        writer_inside.wait(timeout=5)
        with lock.read():
            events.append("read")

    w = threading.Thread(target=writer)
    r = threading.Thread(target=reader)
    w.start()
    r.start()
    w.join(timeout=5)
    r.join(timeout=5)
    assert events == ["write", "read"]
