"""Reading and writing of checkpoint files in the ERMIA layout.

A file holds a header that lists the tables, followed by the data of each
table in the same order.  All integers are little endian.
"""

from __future__ import annotations

import struct
import sys
from dataclasses import dataclass, field, replace
from typing import BinaryIO, Iterator

from .size_encode import INVALID_SIZE_CODE, decode_size_aligned, encode_size_aligned

_SIZE = struct.Struct("<Q")
_U32 = struct.Struct("<I")
_U8 = struct.Struct("<B")
_OBJECT_HDR = struct.Struct("<4Q")
_TUPLE_HDR = struct.Struct("<4Q4QIIQ")

VALUE_OFFSET = _OBJECT_HDR.size + _TUPLE_HDR.size


class CheckpointError(ValueError):
    """The checkpoint data is truncated or inconsistent."""


def _read_exact(fp: BinaryIO, n: int) -> bytes:
    data = fp.read(n)
    if len(data) != n:
        raise CheckpointError(f"truncated checkpoint: wanted {n} bytes, got {len(data)}")
    return data


def _read(fp: BinaryIO, st: struct.Struct) -> tuple:
    return st.unpack(_read_exact(fp, st.size))


@dataclass
class TableDesc:
    name: str
    fid: int
    max_oid: int


@dataclass
class ObjectHeader:
    pdest: int = 0
    next: int = 0
    clsn: int = 0
    epoch: int = 0

    def _pack(self) -> bytes:
        return _OBJECT_HDR.pack(self.pdest, self.next, self.clsn, self.epoch)

    @classmethod
    def _unpack(cls, data: bytes) -> ObjectHeader:
        return cls(*_OBJECT_HDR.unpack(data))


@dataclass
class TupleHeader:
    bitmap: tuple[int, int, int, int] = (0, 0, 0, 0)
    sstamp: int = 0
    xstamp: int = 0
    preader: int = 0
    s2: int = 0
    size: int = 0
    pad: int = 0
    pvalue_garbage: int = 0

    def __post_init__(self) -> None:
        self.bitmap = tuple(self.bitmap)
        if len(self.bitmap) != 4:
            raise ValueError("bitmap must hold exactly four words")

    def _pack(self) -> bytes:
        return _TUPLE_HDR.pack(
            *self.bitmap, self.sstamp, self.xstamp, self.preader, self.s2,
            self.size, self.pad, self.pvalue_garbage,
        )

    @classmethod
    def _unpack(cls, data: bytes) -> TupleHeader:
        fields = _TUPLE_HDR.unpack(data)
        return cls(tuple(fields[:4]), *fields[4:])


@dataclass
class CheckpointEntry:
    """One row: its object id, key, value and the two on-disk headers.

    The tuple header's size always follows the length of the value.
    """

    oid: int
    key: bytes = b""
    value: bytes = b""
    object_hdr: ObjectHeader = field(default_factory=ObjectHeader)
    tuple_hdr: TupleHeader = field(default_factory=TupleHeader)

    def __post_init__(self) -> None:
        self.key = bytes(self.key)
        self.value = bytes(self.value)
        if self.tuple_hdr.size != len(self.value):
            self.tuple_hdr = replace(self.tuple_hdr, size=len(self.value))


@dataclass
class TableData:
    max_oid: int
    fid: int
    entries: list[CheckpointEntry] = field(default_factory=list)


def write_string(fp: BinaryIO, s: str) -> None:
    """Write a length-prefixed string."""
    raw = s.encode("utf-8", errors="surrogateescape")
    fp.write(_SIZE.pack(len(raw)))
    fp.write(raw)


def read_string(fp: BinaryIO) -> str:
    """Read a length-prefixed string; the text ends at the first NUL byte."""
    (length,) = _read(fp, _SIZE)
    raw = _read_exact(fp, length).split(b"\0", 1)[0]
    return raw.decode("utf-8", errors="surrogateescape")


def _write_desc(fp: BinaryIO, desc: TableDesc) -> None:
    write_string(fp, desc.name)
    fp.write(_U32.pack(desc.fid))
    fp.write(_U32.pack(desc.max_oid))


def _read_desc(fp: BinaryIO) -> TableDesc:
    name = read_string(fp)
    (fid,) = _read(fp, _U32)
    (max_oid,) = _read(fp, _U32)
    return TableDesc(name, fid, max_oid)


def write_header(fp: BinaryIO, tables: list[TableDesc]) -> None:
    """Write the table count followed by each table description."""
    fp.write(_U32.pack(len(tables)))
    for desc in tables:
        _write_desc(fp, desc)


def read_header(fp: BinaryIO) -> list[TableDesc]:
    """Read the list of table descriptions at the start of a file."""
    (count,) = _read(fp, _U32)
    return [_read_desc(fp) for _ in range(count)]


def write_entry(fp: BinaryIO, entry: CheckpointEntry, max_oid: int) -> None:
    """Write an entry; an oid equal to max_oid is written as the end marker."""
    fp.write(_U32.pack(entry.oid))
    if entry.oid == max_oid:
        return
    fp.write(_U32.pack(len(entry.key)))
    fp.write(entry.key)
    code, storage_size = encode_size_aligned(VALUE_OFFSET + len(entry.value))
    fp.write(_U8.pack(code))
    fp.write(entry.object_hdr._pack())
    fp.write(entry.tuple_hdr._pack())
    fp.write(entry.value.ljust(storage_size - VALUE_OFFSET, b"\0"))


def read_entry(fp: BinaryIO, max_oid: int) -> CheckpointEntry | None:
    """Read one entry, or return None when the end marker is reached."""
    (oid,) = _read(fp, _U32)
    if oid == max_oid:
        return None
    (key_size,) = _read(fp, _U32)
    key = _read_exact(fp, key_size)
    (code,) = _read(fp, _U8)
    object_hdr = ObjectHeader._unpack(_read_exact(fp, _OBJECT_HDR.size))
    tuple_hdr = TupleHeader._unpack(_read_exact(fp, _TUPLE_HDR.size))
    if code == INVALID_SIZE_CODE:
        raise CheckpointError(f"entry {oid} has an invalid size code")
    storage_size = decode_size_aligned(code)
    if storage_size < tuple_hdr.size + VALUE_OFFSET:
        raise CheckpointError(
            f"entry {oid}: storage of {storage_size} bytes cannot hold "
            f"a value of {tuple_hdr.size} bytes"
        )
    data = _read_exact(fp, storage_size - VALUE_OFFSET)
    return CheckpointEntry(oid, key, data[: tuple_hdr.size], object_hdr, tuple_hdr)


def _iter_entries(fp: BinaryIO, max_oid: int) -> Iterator[CheckpointEntry]:
    while (entry := read_entry(fp, max_oid)) is not None:
        yield entry


def write_table(fp: BinaryIO, table: TableData) -> None:
    """Write a table's data, closed by the end marker."""
    fp.write(_U32.pack(table.max_oid))
    fp.write(_U32.pack(table.fid))
    for entry in table.entries:
        write_entry(fp, entry, table.max_oid)
    fp.write(_U32.pack(table.max_oid))


def read_table(fp: BinaryIO) -> TableData:
    """Read a table's data up to and including its end marker."""
    (max_oid,) = _read(fp, _U32)
    (fid,) = _read(fp, _U32)
    return TableData(max_oid, fid, list(_iter_entries(fp, max_oid)))


def _signed64(value: int) -> int:
    return value - (1 << 64) if value >= 1 << 63 else value


def main(argv: list[str] | None = None) -> int:
    """Dump the header and the entries of a checkpoint file."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print("usage: checkpoint-dump <oac-file>", file=sys.stderr)
        return 1
    try:
        fp = open(args[0], "rb")
    except OSError as exc:
        print(f"open: {exc}", file=sys.stderr)
        return 1

    with fp:
        try:
            tables = read_header(fp)
            print("Dumping ERMIA checkpoint file\n")
            print("=======Header========")
            for desc in tables:
                print(f"Table: {desc.name} {desc.fid} max_oid {desc.max_oid}")
            print()
            for desc in tables:
                print(f"\nTable {desc.name}...")
                for entry in read_table(fp).entries:
                    print(f"OID: {entry.oid} clsn {_signed64(entry.object_hdr.clsn)}")
        except CheckpointError as exc:
            print(f"{args[0]}: {exc}", file=sys.stderr)
            return 1
    return 0