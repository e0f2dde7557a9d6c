import pytest

from epochdb.commit_buffer import PENDING_VALUE, CommitBuffer


def _sid(epoch, seq, node=1):
    return (epoch << 32) | (seq << 8) | node


def _ready_buffer(txn_per_epoch=100, nr_threads=2):
    buf = CommitBuffer(txn_per_epoch, nr_threads, ready_timeout=0.05)
    for core in range(nr_threads):
        buf.clear(core)
    return buf


class Row:
    pass


def test_not_ready_until_every_core_cleared():
    buf = CommitBuffer(10, 3, ready_timeout=0.01)
    buf.clear(0)
    buf.clear(1)
    assert buf.is_ready is False
    with pytest.raises(TimeoutError):
        buf.add_ref(0, Row(), _sid(1, 1))
    buf.clear(2)
    assert buf.is_ready is True


def test_first_write_is_not_a_duplicate():
    buf = _ready_buffer()
    row = Row()
    assert buf.add_ref(0, row, _sid(1, 3)) is False
    assert buf.lookup_duplicate(row, _sid(1, 3)) is None


def test_second_write_creates_pending_duplicate():
    buf = _ready_buffer()
    row = Row()
    sid = _sid(1, 3)
    buf.add_ref(0, row, sid)
    assert buf.add_ref(1, row, sid) is True
    dup = buf.lookup_duplicate(row, sid)
    assert dup is not None
    assert dup.row is row
    assert dup.value is PENDING_VALUE
    assert dup.wcnt == 2


@pytest.mark.parametrize("writes", [2, 3, 5, 9])
def test_duplicate_counts_every_write(writes):
    buf = _ready_buffer()
    row = Row()
    sid = _sid(2, 7)
    results = [buf.add_ref(0, row, sid) for _ in range(writes)]
    assert results == [False] + [True] * (writes - 1)
    assert buf.lookup_duplicate(row, sid).wcnt == writes


def test_different_transactions_do_not_collide():
    buf = _ready_buffer()
    row = Row()
    assert buf.add_ref(0, row, _sid(1, 1)) is False
    assert buf.add_ref(0, row, _sid(1, 2)) is False
    assert buf.lookup_duplicate(row, _sid(1, 1)) is None


def test_different_rows_do_not_collide():
    buf = _ready_buffer()
    a, b = Row(), Row()
    sid = _sid(1, 4)
    assert buf.add_ref(0, a, sid) is False
    assert buf.add_ref(0, b, sid) is False
    buf.add_ref(0, a, sid)
    assert buf.lookup_duplicate(a, sid).row is a
    assert buf.lookup_duplicate(b, sid) is None


def test_many_rows_in_one_transaction():
    buf = _ready_buffer(txn_per_epoch=4, nr_threads=1)
    sid = _sid(1, 2)
    rows = [Row() for _ in range(50)]
    assert all(buf.add_ref(0, r, sid) is False for r in rows)
    assert all(buf.add_ref(0, r, sid) is True for r in rows)
    assert all(buf.lookup_duplicate(r, sid).wcnt == 2 for r in rows)


def test_reset_and_clear_forget_entries():
    buf = _ready_buffer()
    row = Row()
    sid = _sid(1, 5)
    buf.add_ref(0, row, sid)
    buf.add_ref(0, row, sid)
    buf.reset()
    assert buf.is_ready is False
    buf.clear(0)
    buf.clear(1)
    assert buf.lookup_duplicate(row, sid) is None
    assert buf.add_ref(0, row, sid) is False


def test_clear_when_already_clear_is_a_no_op():
    buf = _ready_buffer()
    row = Row()
    sid = _sid(1, 6)
    buf.add_ref(0, row, sid)
    buf.add_ref(0, row, sid)
    buf.clear(0)
    dup = buf.lookup_duplicate(row, sid)
    assert dup.row is row
    assert dup.wcnt == 2
    assert buf.add_ref(0, row, sid) is True
    assert dup.wcnt == 3


def test_invalid_sizes_rejected():
    with pytest.raises(ValueError):
        CommitBuffer(0, 1)
    with pytest.raises(ValueError):
        CommitBuffer(10, 0)