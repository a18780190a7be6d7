import threading

from medley.cache import TrackCache
from medley.tracks import QueryOptions, SearchOptions, Track


def _track(id: str, **kwargs: object) -> Track:
    kwargs.setdefault("title", id)
    return Track(id=id, source_id="main", source_type="filesystem", **kwargs)  # type: ignore


def test_add_get_roundtrip() -> None:
    c = TrackCache()
    t = _track("t1", artist="BLACKPINK")
    c.add(t)
    assert c.get("t1") == t
    assert c.get("t2") is None
    assert c.count() == 1


def test_add_is_upsert() -> None:
    c = TrackCache()
    c.add(_track("t1", title="old"))
    c.add(_track("t1", title="new"))
    assert c.count() == 1
    assert c.get("t1").title == "new"  # type: ignore


def test_delete_and_clear() -> None:
    c = TrackCache()
    c.add(_track("t1"))
    c.add(_track("t2"))
    c.delete("t1")
    c.delete("nonexistent")
    assert c.get("t1") is None
    assert c.count() == 1
    c.clear()
    assert c.count() == 0
    assert c.get_all() == []


def test_get_all_sort_and_paginate() -> None:
    c = TrackCache()
    for id, year in [("c", 2001), ("a", 2003), ("b", 2002)]:
        c.add(_track(id, year=year))
    assert [t.id for t in c.get_all()] == ["a", "b", "c"]
    assert [t.id for t in c.get_all(QueryOptions(sort_by="year"))] == ["c", "b", "a"]
    assert [t.id for t in c.get_all(QueryOptions(sort_by="year", sort_order="desc"))] == ["a", "b", "c"]
    assert [t.id for t in c.get_all(QueryOptions(offset=1))] == ["b", "c"]
    assert [t.id for t in c.get_all(QueryOptions(offset=1, limit=1))] == ["b"]
    assert c.get_all(QueryOptions(offset=3)) == []


def test_search() -> None:
    c = TrackCache()
    c.add(_track("t1", title="Kill This Love", artist="BLACKPINK", genre="K-Pop"))
    c.add(_track("t2", title="Hype Boy", artist="NewJeans", genre="K-Pop"))
    c.add(_track("t3", title="Love Dive", artist="IVE", album_artist="IVE"))
    assert [t.id for t in c.search("LOVE")] == ["t1", "t3"]
    assert [t.id for t in c.search("newjeans")] == ["t2"]
    assert c.search("k-pop") == []
    assert [t.id for t in c.search("k-pop", SearchOptions(fields=["genre"]))] == ["t2", "t1"]
    assert [t.id for t in c.search("ive", SearchOptions(fields=["album_artist"]))] == ["t3"]
    assert len(c.search("")) == 3


def test_find_by_album_orders_by_disc_and_track() -> None:
    c = TrackCache()
    c.add(_track("d2t1", album_id="a", disc_number=2, track_number=1))
    c.add(_track("d1t2", album_id="a", disc_number=1, track_number=2))
    c.add(_track("d1t1", album_id="a", disc_number=1, track_number=1))
    c.add(_track("other", album_id="b", disc_number=1, track_number=1))
    tracks = c.find_by_album("a")
    assert [t.id for t in tracks] == ["d1t1", "d1t2", "d2t1"]
    keys = [(t.disc_number, t.track_number) for t in tracks]
    assert keys == sorted(keys)
    assert c.find_by_album("nonexistent") == []


def test_find_by_artist_orders_by_album_and_track() -> None:
    c = TrackCache()
    c.add(_track("b1", artist_id="x", album="B", track_number=1))
    c.add(_track("a2", artist_id="x", album="A", track_number=2))
    c.add(_track("a1", artist_id="x", album="A", track_number=1))
    c.add(_track("other", artist_id="y", album="A", track_number=1))
    assert [t.id for t in c.find_by_artist("x")] == ["a1", "a2", "b1"]


def test_concurrent_add_and_get() -> None:
    c = TrackCache()
    stop = threading.Event()
    failures: list[str] = []

    def writer(n: int) -> None:
        for i in range(500):
            c.add(_track(f"t{i % 10}", title=f"v{n}-{i}", artist=f"v{n}-{i}"))

    def reader() -> None:
        while not stop.is_set():
            for i in range(10):
                t = c.get(f"t{i}")
                if t is not None and t.title != t.artist:
                    failures.append(f"partial record: {t}")
            c.get_all()
            c.search("v")

    writers = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    readers = [threading.Thread(target=reader) for _ in range(4)]
    for t in readers + writers:
        t.start()
    for t in writers:
        t.join()
    stop.set()
    for t in readers:
        t.join()
    assert failures == []
    assert c.count() == 10
