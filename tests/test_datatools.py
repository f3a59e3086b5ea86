import threading
from dataclasses import dataclass

import pytest

from pocketledger.datatools import ConcurrentMap, copy_reverse, extract_values, to_map


@dataclass
class _User:
    id: int
    name: str


USERS = [_User(1, "test1"), _User(2, "test2"), _User(3, "test3")]


def test_to_map_indexes_by_key():
    result = to_map(USERS, lambda user: user.id)
    assert set(result) == {1, 2, 3}
    assert result[2] is USERS[1]


def test_to_map_later_item_wins():
    items = [_User(1, "first"), _User(1, "second")]
    assert to_map(items, lambda user: user.id)[1].name == "second"


def test_extract_values_keeps_order():
    assert extract_values(USERS, lambda user: user.id) == [1, 2, 3]
    assert extract_values([], lambda user: user.id) == []


def test_copy_reverse_does_not_mutate():
    original = [1, 2, 3, 4]
    reversed_copy = copy_reverse(original)
    assert reversed_copy == [4, 3, 2, 1]
    assert original == [1, 2, 3, 4]
    assert copy_reverse(reversed_copy) == original


def test_store_and_load():
    cmap = ConcurrentMap()
    cmap.store("a", 1)
    assert cmap.load("a") == 1
    assert "a" in cmap
    assert len(cmap) == 1


def test_load_missing_raises():
    with pytest.raises(KeyError):
        ConcurrentMap().load("missing")


def test_load_or_store():
    cmap = ConcurrentMap()
    assert cmap.load_or_store("k", "v1") == ("v1", False)
    assert cmap.load_or_store("k", "v2") == ("v1", True)
    assert cmap.load("k") == "v1"


def test_compare_and_swap():
    cmap = ConcurrentMap()
    cmap.store("k", 1)
    assert cmap.compare_and_swap("k", 2, 3) is False
    assert cmap.load("k") == 1
    assert cmap.compare_and_swap("k", 1, 3) is True
    assert cmap.load("k") == 3
    assert cmap.compare_and_swap("absent", None, 1) is False
    assert "absent" not in cmap


def test_compare_and_delete():
    cmap = ConcurrentMap()
    cmap.store("k", 1)
    assert cmap.compare_and_delete("k", 2) is False
    assert "k" in cmap
    assert cmap.compare_and_delete("k", 1) is True
    assert "k" not in cmap


def test_delete_missing_is_harmless():
    cmap = ConcurrentMap()
    cmap.store("k", 1)
    cmap.delete("missing")
    cmap.delete("k")
    assert len(cmap) == 0


def test_each_stops_when_callback_returns_false():
    cmap = ConcurrentMap()
    for number in range(5):
        cmap.store(number, number * 10)
    seen = []

    def visit(key, value):
        seen.append((key, value))
        return len(seen) < 2

    cmap.each(visit)
    assert len(seen) == 2
    assert all(cmap.load(key) == value for key, value in seen)
    assert len(cmap) == 5


def test_each_visits_everything_when_continuing():
    cmap = ConcurrentMap()
    for number in range(5):
        cmap.store(number, number)
    seen = {}
    cmap.each(lambda key, value: seen.setdefault(key, value) is not None)
    assert seen == {n: n for n in range(5)}


def test_load_or_store_single_winner_across_threads():
    cmap = ConcurrentMap()
    outcomes = []
    barrier = threading.Barrier(8)

    def worker(index):
        barrier.wait()
        outcomes.append(cmap.load_or_store("shared", index))

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert sum(1 for _, loaded in outcomes if not loaded) == 1
    assert {value for value, _ in outcomes} == {cmap.load("shared")}