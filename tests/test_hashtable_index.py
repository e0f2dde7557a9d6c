import threading

import pytest

from epochdb.hashtable_index import AUTO_INCREMENT_ZONES, HashtableIndex, Table


def test_create_then_search_finds_same_row():
    index = HashtableIndex(nr_buckets=64)
    row, created = index.search_or_create(b"key-1")
    assert created is True
    assert index.search(b"key-1") is row


def test_second_search_or_create_returns_existing_row():
    index = HashtableIndex(nr_buckets=64)
    row, _ = index.search_or_create(b"abc")
    again, created = index.search_or_create(b"abc")
    assert created is False
    assert again is row
    assert len(index) == 1


def test_search_missing_key_returns_none():
    index = HashtableIndex(nr_buckets=8)
    index.search_or_create(b"present")
    assert index.search(b"absent") is None
    assert b"absent" not in index
    assert b"present" in index


def test_new_row_has_capacity_one():
    row, _ = HashtableIndex(nr_buckets=4).search_or_create(b"k")
    assert row.capacity == 1


def test_key_longer_than_sixteen_bytes_is_rejected():
    index = HashtableIndex(nr_buckets=4)
    with pytest.raises(ValueError):
        index.search_or_create(b"x" * 17)
    with pytest.raises(ValueError):
        index.search(b"y" * 20)


def test_single_bucket_chain_keeps_distinct_keys_apart():
    index = HashtableIndex(hash_func=lambda k: 0, nr_buckets=1)
    rows = {k: index.search_or_create(k)[0] for k in (b"a", b"b", b"c", b"dd")}
    assert len({id(r) for r in rows.values()}) == 4
    for k, r in rows.items():
        assert index.search(k) is r


def test_trailing_zero_bytes_name_same_row_in_same_bucket():
    index = HashtableIndex(hash_func=lambda k: 0, nr_buckets=1)
    row, _ = index.search_or_create(b"ab")
    other, created = index.search_or_create(b"ab\0")
    assert created is False
    assert other is row


def test_str_keys_are_encoded():
    index = HashtableIndex(nr_buckets=16)
    row, _ = index.search_or_create("name")
    assert index.search(b"name") is row


def test_custom_row_factory():
    index = HashtableIndex(nr_buckets=16, row_factory=dict)
    row, _ = index.search_or_create(b"k")
    assert row == {}


def test_invalid_bucket_count():
    with pytest.raises(ValueError):
        HashtableIndex(nr_buckets=0)


def test_concurrent_creation_gives_one_row_per_key():
    index = HashtableIndex(nr_buckets=4)
    results = []

    def worker():
        results.append(index.search_or_create(b"shared")[0])

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len({id(r) for r in results}) == 1
    assert len(index) == 1


def test_auto_increment_tags_node_id():
    table = Table(node_id=3)
    first = table.auto_increment()
    second = table.auto_increment()
    assert first & 0xFF == 3
    assert second & 0xFF == 3
    assert (second >> 8) - (first >> 8) == 1


def test_current_auto_increment_is_next_value():
    table = Table(node_id=2)
    table.auto_increment(5)
    peek = table.current_auto_increment(5)
    assert table.auto_increment(5) == peek


def test_zones_are_independent():
    table = Table(node_id=1)
    table.auto_increment(0)
    table.auto_increment(0)
    assert table.current_auto_increment(1) == table.current_auto_increment(2)
    assert table.current_auto_increment(0) != table.current_auto_increment(1)


def test_reset_auto_increment():
    table = Table(node_id=1)
    table.reset_auto_increment(4, 10)
    assert table.auto_increment(4) >> 8 == 10


def test_reset_auto_increment_zone_overflow():
    table = Table()
    with pytest.raises(ValueError):
        table.reset_auto_increment(AUTO_INCREMENT_ZONES, 0)


def test_table_defaults():
    table = HashtableIndex(nr_buckets=2)
    assert table.relation_id == -1
    assert table.read_only is False