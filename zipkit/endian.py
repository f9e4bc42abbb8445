"""
Little-endian fixed-width integer helpers for blocking byte streams.

Any object with ``write(data)`` is a sink and any object with ``read(n)`` is a
source. Each helper performs a single logical transfer of exactly ``width/8``
bytes:

- writes go through :func:`write_all`, reads through :func:`read_exact`
- values are unsigned; out-of-range values are rejected before any byte is
  written
- short input raises :class:`~zipkit.errors.UnexpectedEofError`, every other
  channel error propagates unchanged

Only writing is offered for 128-bit values.
"""

from __future__ import annotations

import errno
import struct
from typing import BinaryIO

from .errors import UnexpectedEofError, WriteZeroError


_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_U128_SIZE = 16


def _check_range(value: int, bits: int) -> None:
    if not 0 <= value < (1 << bits):
        raise ValueError(f"value out of range for u{bits}: {value}")


def read_exact(f: BinaryIO, n: int) -> bytes:
    buf = bytearray()
    while len(buf) < n:
        chunk = f.read(n - len(buf))
        if not chunk:
            raise UnexpectedEofError(n, len(buf))
        buf += chunk
    return bytes(buf)


def write_all(f: BinaryIO, data: bytes) -> None:
    # Raw sinks may report short writes; None means a non-blocking sink would block.
    remaining = data
    while remaining:
        written = f.write(remaining)
        if written is None:
            raise BlockingIOError(errno.EAGAIN, "sink would block", len(data) - len(remaining))
        if written == 0:
            raise WriteZeroError("failed to write whole buffer")
        remaining = remaining[written:]


def write_u16_le(f: BinaryIO, value: int) -> None:
    _check_range(value, 16)
    write_all(f, _U16.pack(value))


def write_u32_le(f: BinaryIO, value: int) -> None:
    _check_range(value, 32)
    write_all(f, _U32.pack(value))


def write_u64_le(f: BinaryIO, value: int) -> None:
    _check_range(value, 64)
    write_all(f, _U64.pack(value))


def write_u128_le(f: BinaryIO, value: int) -> None:
    _check_range(value, 128)
    write_all(f, value.to_bytes(_U128_SIZE, "little"))


def read_u16_le(f: BinaryIO) -> int:
    return _U16.unpack(read_exact(f, _U16.size))[0]


def read_u32_le(f: BinaryIO) -> int:
    return _U32.unpack(read_exact(f, _U32.size))[0]


def read_u64_le(f: BinaryIO) -> int:
    return _U64.unpack(read_exact(f, _U64.size))[0]


class LittleEndianWriteExt:
    """Mixin adding little-endian integer writes to any class with ``write``."""

    def write_u16_le(self, value: int) -> None:
        write_u16_le(self, value)

    def write_u32_le(self, value: int) -> None:
        write_u32_le(self, value)

    def write_u64_le(self, value: int) -> None:
        write_u64_le(self, value)

    def write_u128_le(self, value: int) -> None:
        write_u128_le(self, value)


class LittleEndianReadExt:
    """Mixin adding little-endian integer reads to any class with ``read``."""

    def read_u16_le(self) -> int:
        return read_u16_le(self)

    def read_u32_le(self) -> int:
        return read_u32_le(self)

    def read_u64_le(self) -> int:
        return read_u64_le(self)


class LittleEndianWriter(LittleEndianWriteExt):
    """Wraps an existing sink; the sink stays owned by the caller."""

    def __init__(self, raw: BinaryIO):
        self.raw = raw

    def write(self, data: bytes):
        return self.raw.write(data)


class LittleEndianReader(LittleEndianReadExt):
    """Wraps an existing source; the source stays owned by the caller."""

    def __init__(self, raw: BinaryIO):
        self.raw = raw

    def read(self, n: int = -1) -> bytes:
        return self.raw.read(n)
