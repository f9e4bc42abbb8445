from __future__ import annotations

from typing import Optional

from .constants import METHOD_STORED, METHOD_DEFLATED, METHOD_ZSTD
from .errors import InvalidArchiveError, UnsupportedArchiveError

import zlib

_HAS_ZSTD = False
_zstd_mod = None
_ZstdError = RuntimeError
try:  # optional: installed through the "zstd" extra
    import zstandard as _zstd_mod  # type: ignore
    from zstandard import ZstdError as _ZstdError  # type: ignore
    _HAS_ZSTD = True
except ImportError:
    _zstd_mod = None
    _HAS_ZSTD = False

# Raw deflate stream, no zlib header or trailer
_DEFLATE_WBITS = -15


class Codec:
    def __init__(self, method: int, level: Optional[int] = None):
        self.method = method
        self.level = level

    def compress(self, data: bytes) -> bytes:
        if self.method == METHOD_STORED:
            return data
        if self.method == METHOD_DEFLATED:
            c = zlib.compressobj(self.level if self.level is not None else 6, zlib.DEFLATED, _DEFLATE_WBITS)
            return c.compress(data) + c.flush()
        if self.method == METHOD_ZSTD:
            if not (_HAS_ZSTD and _zstd_mod is not None):
                raise UnsupportedArchiveError("zstd method selected but the zstandard module is not installed")
            try:
                c = _zstd_mod.ZstdCompressor(level=self.level if self.level is not None else 3)
                return c.compress(data)
            except _ZstdError as e:
                raise RuntimeError(f"zstd compression failed: {e}") from e
        raise UnsupportedArchiveError(f"unsupported compression method: {self.method}")

    def decompress(self, data: bytes) -> bytes:
        if self.method == METHOD_STORED:
            return data
        if self.method == METHOD_DEFLATED:
            try:
                return zlib.decompress(data, _DEFLATE_WBITS)
            except zlib.error as e:
                raise InvalidArchiveError(f"deflate stream is corrupt: {e}") from e
        if self.method == METHOD_ZSTD:
            if not (_HAS_ZSTD and _zstd_mod is not None):
                raise UnsupportedArchiveError("zstd entry found but the zstandard module is not installed")
            try:
                d = _zstd_mod.ZstdDecompressor()
                return d.decompress(data)
            except _ZstdError as e:
                raise InvalidArchiveError(f"zstd stream is corrupt: {e}") from e
        raise UnsupportedArchiveError(f"unsupported compression method: {self.method}")
