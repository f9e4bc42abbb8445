"""
Little-endian fixed-width integer helpers for asyncio streams.

Suspending counterparts of :mod:`zipkit.endian`. A source is anything shaped
like :class:`asyncio.StreamReader` (``await readexactly(n)``), a sink anything
shaped like :class:`asyncio.StreamWriter` (``write(data)`` then
``await drain()``). Every helper awaits exactly one channel call, so the only
suspension point is the transfer itself and never the middle of an integer.

Cancellation semantics are whatever the channel provides: a cancelled call may
already have consumed or queued some bytes.
"""

from __future__ import annotations

import asyncio
import struct
from typing import Protocol, runtime_checkable

from .endian import _check_range
from .errors import UnexpectedEofError


_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_U128_SIZE = 16


@runtime_checkable
class AsyncByteSource(Protocol):
    async def readexactly(self, n: int) -> bytes: ...


@runtime_checkable
class AsyncByteSink(Protocol):
    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


async def read_exact(reader: AsyncByteSource, n: int) -> bytes:
    try:
        return await reader.readexactly(n)
    except asyncio.IncompleteReadError as exc:
        raise UnexpectedEofError(n, len(exc.partial)) from exc


async def write_all(writer: AsyncByteSink, data: bytes) -> None:
    writer.write(data)
    await writer.drain()


async def write_u16_le(writer: AsyncByteSink, value: int) -> None:
    _check_range(value, 16)
    await write_all(writer, _U16.pack(value))


async def write_u32_le(writer: AsyncByteSink, value: int) -> None:
    _check_range(value, 32)
    await write_all(writer, _U32.pack(value))


async def write_u64_le(writer: AsyncByteSink, value: int) -> None:
    _check_range(value, 64)
    await write_all(writer, _U64.pack(value))


async def write_u128_le(writer: AsyncByteSink, value: int) -> None:
    _check_range(value, 128)
    await write_all(writer, value.to_bytes(_U128_SIZE, "little"))


async def read_u16_le(reader: AsyncByteSource) -> int:
    return _U16.unpack(await read_exact(reader, _U16.size))[0]


async def read_u32_le(reader: AsyncByteSource) -> int:
    return _U32.unpack(await read_exact(reader, _U32.size))[0]


async def read_u64_le(reader: AsyncByteSource) -> int:
    return _U64.unpack(await read_exact(reader, _U64.size))[0]


class AsyncLittleEndianWriteExt:
    """Mixin for classes providing ``write`` and ``async drain``."""

    async def write_u16_le(self, value: int) -> None:
        await write_u16_le(self, value)

    async def write_u32_le(self, value: int) -> None:
        await write_u32_le(self, value)

    async def write_u64_le(self, value: int) -> None:
        await write_u64_le(self, value)

    async def write_u128_le(self, value: int) -> None:
        await write_u128_le(self, value)


class AsyncLittleEndianReadExt:
    """Mixin for classes providing ``async readexactly``."""

    async def read_u16_le(self) -> int:
        return await read_u16_le(self)

    async def read_u32_le(self) -> int:
        return await read_u32_le(self)

    async def read_u64_le(self) -> int:
        return await read_u64_le(self)


class AsyncLittleEndianWriter(AsyncLittleEndianWriteExt):
    def __init__(self, raw: AsyncByteSink):
        self.raw = raw

    def write(self, data: bytes) -> None:
        self.raw.write(data)

    async def drain(self) -> None:
        await self.raw.drain()


class AsyncLittleEndianReader(AsyncLittleEndianReadExt):
    def __init__(self, raw: AsyncByteSource):
        self.raw = raw

    async def readexactly(self, n: int) -> bytes:
        return await self.raw.readexactly(n)
