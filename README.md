# epochdb

Pieces of an epoch-based transactional database node, usable on their own:

- `epochdb.size_encode` – an order-preserving 8-bit encoding of object sizes.
  `encode_size` rounds a size up to the next representable one and returns
  its code (sizes above 950272 give `INVALID_SIZE_CODE`, `0xff`);
  `decode_size` turns a code back into a size. `encode_size_aligned` first
  aligns the size to `2**align_bits` (4 by default) and returns a pair of the
  code and the size that code decodes to; `decode_size_aligned` reverses it.
- `epochdb.checkpoint` – reading and writing checkpoint files in the ERMIA
  layout: a header of `TableDesc` records (`write_header`, `read_header`)
  followed by each table's `TableData` (`write_table`, `read_table`), made of
  `CheckpointEntry` rows with their `ObjectHeader` and `TupleHeader`.
  Truncated or inconsistent data raises `CheckpointError`.
- `epochdb.console` – `Console` tracks a node's `ServerStatus` (booting,
  configuring, listening, connecting, running, exiting), lets threads wait
  for a status with `wait_for_server_status`, keeps the configuration sent
  with a `configuring` status change (`find_config_section` raises
  `ConfigSectionMissing` for an absent section), and answers JSON requests
  of type `status_change` and `get_status`; anything else gets
  `{"type": "error"}`.
- `epochdb.console_client` – the controller connection. Requests and
  responses are JSON documents terminated by a NUL byte, answered one at a
  time by a `ConsoleClient`. `parse_controller_address` splits `host[:port]`
  (port 3144 by default) and `connect_console` connects and serves requests
  on a daemon thread.
- `epochdb.hashing` – `xxh32`, a pure-Python XXH32, and `default_hash`, XXH32
  with seed `0xdeadbeef`.
- `epochdb.hashtable_index` – `Table`, with per-zone auto-increment keys that
  carry the node id in their low byte, and `HashtableIndex`, a chained hash
  index over keys of at most 16 bytes (`search_or_create`, `search`).
- `epochdb.commit_buffer` – `CommitBuffer`, which detects repeated writes to
  the same row by the same transaction within an epoch and records the
  duplicate as a `CommitEntry`.

## Installation

```
pip install .
```

Python 3.10 or later is required; there are no third-party dependencies.

## Command

Dump the header and entries of a checkpoint file:

```
epochdb-checkpoint-dump ermia.chkpt
```

It prints each table's name, id and `max_oid`, then the oid and clsn of every
entry, and exits with status 1 on a missing, unreadable or damaged file.

## Examples

```python
from epochdb.size_encode import encode_size, decode_size, encode_size_aligned

code = encode_size(1000)
assert decode_size(code) >= 1000

code, storage = encode_size_aligned(100)
assert storage >= 100 and storage % 16 == 0
```

```python
from epochdb.console import Console, ServerStatus

console = Console("node1")
print(console.handle_json_api({"type": "get_status"})["status"])  # booting
console.handle_json_api({"type": "status_change", "status": "running"})
assert console.server_status is ServerStatus.RUNNING
```

```python
from epochdb.hashtable_index import HashtableIndex

index = HashtableIndex(nr_buckets=1024)
row, created = index.search_or_create(b"key-1")
assert created and index.search(b"key-1") is row
print(index.auto_increment())  # 1: counter 0, node id 1
```

```python
from epochdb.commit_buffer import CommitBuffer

buf = CommitBuffer(txn_per_epoch=100, nr_threads=1)
buf.clear(0)                  # every core clears its slice before use
row = object()
sid = (1 << 32) | (1 << 8) | 1
assert buf.add_ref(0, row, sid) is False
assert buf.add_ref(0, row, sid) is True
assert buf.lookup_duplicate(row, sid).wcnt == 2
```

## What this package does not do

There is no command that starts a database node: the pieces above are not
wired into a server, nothing schedules or executes transactions, and there
is no timing, logging set-up, per-core load planning or contention
management. Rows in `HashtableIndex` are placeholder objects (or whatever a
`row_factory` returns); the package stores no row versions and keeps
nothing on disk apart from the checkpoint files it is asked to write.

## Tests

```
pip install .[test]
pytest
```