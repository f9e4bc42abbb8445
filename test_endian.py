from __future__ import annotations

import io
import os
import unittest

from zipkit import endian
from zipkit.endian import (
    LittleEndianReadExt,
    LittleEndianReader,
    LittleEndianWriteExt,
    LittleEndianWriter,
    read_exact,
    read_u16_le,
    read_u32_le,
    read_u64_le,
    write_all,
    write_u16_le,
    write_u32_le,
    write_u64_le,
    write_u128_le,
)
from zipkit.errors import UnexpectedEofError, WriteZeroError


class _TrickleSource:
    """Returns at most one byte per read call."""

    def __init__(self, data: bytes):
        self._buf = io.BytesIO(data)

    def read(self, n: int = -1) -> bytes:
        return self._buf.read(min(n, 1))


class _ShortSink:
    """Accepts at most two bytes per write call."""

    def __init__(self):
        self.data = bytearray()
        self.calls = 0

    def write(self, data) -> int:
        self.calls += 1
        chunk = bytes(data[:2])
        self.data += chunk
        return len(chunk)


class _ZeroSink:
    def write(self, data) -> int:
        return 0


class _WouldBlockSink:
    def write(self, data):
        return None


class _BrokenSink:
    def write(self, data):
        raise BrokenPipeError("downstream closed")


class _Recorder(io.BytesIO, LittleEndianWriteExt, LittleEndianReadExt):
    pass


class ByteOrderTests(unittest.TestCase):
    def test_u16_byte_order(self):
        buf = io.BytesIO()
        write_u16_le(buf, 0x0102)
        self.assertEqual(buf.getvalue(), bytes([0x02, 0x01]))

    def test_u32_byte_order(self):
        buf = io.BytesIO()
        write_u32_le(buf, 0x01020304)
        self.assertEqual(buf.getvalue(), bytes([0x04, 0x03, 0x02, 0x01]))

    def test_u64_byte_order(self):
        buf = io.BytesIO()
        write_u64_le(buf, 0x0102030405060708)
        self.assertEqual(buf.getvalue(), bytes(range(8, 0, -1)))

    def test_u128_max_is_sixteen_ff_bytes(self):
        buf = io.BytesIO()
        write_u128_le(buf, (1 << 128) - 1)
        self.assertEqual(buf.getvalue(), b"\xff" * 16)

    def test_u128_ascending_significance(self):
        buf = io.BytesIO()
        value = int.from_bytes(bytes(range(1, 17)), "big")
        write_u128_le(buf, value)
        self.assertEqual(buf.getvalue(), bytes(range(16, 0, -1)))


class RoundTripTests(unittest.TestCase):
    def test_boundary_values(self):
        cases = [
            (write_u16_le, read_u16_le, 16),
            (write_u32_le, read_u32_le, 32),
            (write_u64_le, read_u64_le, 64),
        ]
        for write, read, bits in cases:
            for value in (0, 1, 0x7F, 1 << (bits - 1), (1 << bits) - 1):
                buf = io.BytesIO()
                write(buf, value)
                self.assertEqual(len(buf.getvalue()), bits // 8)
                buf.seek(0)
                self.assertEqual(read(buf), value)

    def test_interleaved_widths(self):
        buf = io.BytesIO()
        write_u16_le(buf, 0xBEEF)
        write_u32_le(buf, 0xDEADBEEF)
        write_u64_le(buf, 0x0123456789ABCDEF)
        self.assertEqual(len(buf.getvalue()), 2 + 4 + 8)
        buf.seek(0)
        self.assertEqual(read_u16_le(buf), 0xBEEF)
        self.assertEqual(buf.tell(), 2)
        self.assertEqual(read_u32_le(buf), 0xDEADBEEF)
        self.assertEqual(buf.tell(), 6)
        self.assertEqual(read_u64_le(buf), 0x0123456789ABCDEF)
        self.assertEqual(buf.read(), b"")


class ExactConsumptionTests(unittest.TestCase):
    def test_exact_bytes_leave_nothing(self):
        buf = io.BytesIO(b"\x04\x03\x02\x01")
        self.assertEqual(read_u32_le(buf), 0x01020304)
        self.assertEqual(buf.read(), b"")

    def test_short_input_raises_unexpected_eof(self):
        buf = io.BytesIO(b"\x01\x02\x03")
        with self.assertRaises(UnexpectedEofError) as ctx:
            read_u32_le(buf)
        self.assertEqual(ctx.exception.expected, 4)
        self.assertEqual(ctx.exception.received, 3)
        self.assertIsInstance(ctx.exception, EOFError)
        self.assertNotIsInstance(ctx.exception, OSError)

    def test_empty_input(self):
        with self.assertRaises(UnexpectedEofError):
            read_u16_le(io.BytesIO(b""))

    def test_short_reads_are_stitched(self):
        src = _TrickleSource(b"\x08\x07\x06\x05\x04\x03\x02\x01\xff")
        self.assertEqual(read_u64_le(src), 0x0102030405060708)
        self.assertEqual(read_exact(src, 1), b"\xff")

    def test_no_u128_read(self):
        self.assertFalse(hasattr(endian, "read_u128_le"))
        self.assertFalse(hasattr(LittleEndianReadExt, "read_u128_le"))
        self.assertFalse(hasattr(LittleEndianReader, "read_u128_le"))


class WriteFailureTests(unittest.TestCase):
    def test_short_writes_complete(self):
        sink = _ShortSink()
        write_u64_le(sink, 0x0102030405060708)
        self.assertEqual(bytes(sink.data), bytes(range(8, 0, -1)))
        self.assertEqual(sink.calls, 4)

    def test_zero_write_raises(self):
        with self.assertRaises(WriteZeroError) as ctx:
            write_u32_le(_ZeroSink(), 1)
        self.assertIsInstance(ctx.exception, OSError)

    def test_would_block_sink_raises(self):
        with self.assertRaises(BlockingIOError):
            write_u32_le(_WouldBlockSink(), 1)

    @unittest.skipUnless(hasattr(os, "set_blocking") and os.name == "posix", "needs non-blocking pipes")
    def test_full_nonblocking_pipe_raises(self):
        rfd, wfd = os.pipe()
        self.addCleanup(os.close, rfd)
        raw = io.FileIO(wfd, "wb")
        self.addCleanup(raw.close)
        os.set_blocking(wfd, False)
        for chunk in (b"x" * 65536, b"x"):
            while raw.write(chunk) is not None:
                pass
        with self.assertRaises(BlockingIOError):
            write_u64_le(raw, 1)

    def test_channel_error_propagates_unchanged(self):
        with self.assertRaises(BrokenPipeError):
            write_u16_le(_BrokenSink(), 1)

    def test_out_of_range_writes_nothing(self):
        buf = io.BytesIO()
        for write, bad in ((write_u16_le, 1 << 16), (write_u32_le, -1), (write_u64_le, 1 << 64), (write_u128_le, 1 << 128)):
            with self.assertRaises(ValueError):
                write(buf, bad)
        self.assertEqual(buf.getvalue(), b"")

    def test_write_all_empty_is_noop(self):
        sink = _ShortSink()
        write_all(sink, b"")
        self.assertEqual(sink.calls, 0)


class ExtensionTests(unittest.TestCase):
    def test_mixin_methods(self):
        rec = _Recorder()
        rec.write_u16_le(0x0102)
        rec.write_u32_le(7)
        rec.write_u64_le(9)
        rec.write_u128_le(11)
        self.assertEqual(len(rec.getvalue()), 2 + 4 + 8 + 16)
        rec.seek(0)
        self.assertEqual(rec.read_u16_le(), 0x0102)
        self.assertEqual(rec.read_u32_le(), 7)
        self.assertEqual(rec.read_u64_le(), 9)

    def test_adapters_leave_channel_usable(self):
        buf = io.BytesIO()
        w = LittleEndianWriter(buf)
        w.write_u32_le(0xCAFEBABE)
        buf.write(b"tail")
        self.assertEqual(buf.getvalue(), b"\xbe\xba\xfe\xcatail")
        buf.seek(0)
        r = LittleEndianReader(buf)
        self.assertEqual(r.read_u32_le(), 0xCAFEBABE)
        self.assertEqual(buf.read(), b"tail")

    def test_adapter_matches_function(self):
        a, b = io.BytesIO(), io.BytesIO()
        LittleEndianWriter(a).write_u64_le(123456789)
        write_u64_le(b, 123456789)
        self.assertEqual(a.getvalue(), b.getvalue())


if __name__ == "__main__":
    unittest.main()
