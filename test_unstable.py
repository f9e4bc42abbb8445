from __future__ import annotations

import io
import unittest
from datetime import datetime

from zipkit import unstable
from zipkit.errors import UnsupportedArchiveError
from zipkit.read import stream as read_stream
from zipkit.unstable import stream as unstable_stream
from zipkit.unstable.write import FileOptions, ZipWriter, with_deprecated_encryption
from zipkit.write import FileOptions as CoreFileOptions


class DeprecatedEncryptionShimTests(unittest.TestCase):
    def test_matches_underlying_builder(self):
        base = FileOptions()
        via_shim = with_deprecated_encryption(base, "secret")
        direct = base._with_deprecated_encryption(b"secret")
        self.assertEqual(via_shim.encrypt_with, direct.encrypt_with)
        self.assertEqual(via_shim, direct)
        self.assertTrue(via_shim.encrypt_with.is_legacy)
        self.assertEqual(via_shim.encrypt_with.password, b"secret")

    def test_accepts_bytes_like(self):
        expected = FileOptions()._with_deprecated_encryption(b"pw\x00\xff")
        for pw in (b"pw\x00\xff", bytearray(b"pw\x00\xff"), memoryview(b"pw\x00\xff")):
            self.assertEqual(with_deprecated_encryption(FileOptions(), pw), expected)

    def test_no_content_validation(self):
        opts = with_deprecated_encryption(FileOptions(), b"")
        self.assertEqual(opts.encrypt_with.password, b"")

    def test_original_value_untouched(self):
        base = FileOptions().with_compression_level(9)
        updated = with_deprecated_encryption(base, b"secret")
        self.assertIsNone(base.encrypt_with)
        self.assertEqual(updated.compression_level, 9)

    def test_rejects_non_buffers(self):
        with self.assertRaises(TypeError):
            with_deprecated_encryption(FileOptions(), 12345)

    def test_underlying_builder_requires_bytes(self):
        with self.assertRaises(TypeError):
            FileOptions()._with_deprecated_encryption("secret")

    def test_writer_refuses_legacy_cipher(self):
        opts = with_deprecated_encryption(FileOptions(), b"secret").with_last_modified_time(datetime(2020, 1, 1))
        w = ZipWriter(io.BytesIO())
        with self.assertRaises(UnsupportedArchiveError):
            w.write_file("a.txt", b"data", opts)


class PassThroughNamespaceTests(unittest.TestCase):
    def test_write_namespace_reexports(self):
        self.assertIs(FileOptions, CoreFileOptions)

    def test_stream_namespace_reexports(self):
        for name in unstable_stream.__all__:
            self.assertIs(getattr(unstable_stream, name), getattr(read_stream, name))

    def test_extension_reexports(self):
        from zipkit.aio import AsyncLittleEndianReadExt, AsyncLittleEndianWriteExt
        from zipkit.endian import LittleEndianReadExt, LittleEndianWriteExt

        self.assertIs(unstable.LittleEndianWriteExt, LittleEndianWriteExt)
        self.assertIs(unstable.LittleEndianReadExt, LittleEndianReadExt)
        self.assertIs(unstable.AsyncLittleEndianWriteExt, AsyncLittleEndianWriteExt)
        self.assertIs(unstable.AsyncLittleEndianReadExt, AsyncLittleEndianReadExt)


if __name__ == "__main__":
    unittest.main()
