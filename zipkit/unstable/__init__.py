"""Unstable APIs.

Everything under this namespace may change or disappear between releases
without a deprecation period.
"""

from ..aio import AsyncLittleEndianReadExt, AsyncLittleEndianWriteExt
from ..endian import LittleEndianReadExt, LittleEndianWriteExt
from . import stream, write

__all__ = [
    "AsyncLittleEndianReadExt",
    "AsyncLittleEndianWriteExt",
    "LittleEndianReadExt",
    "LittleEndianWriteExt",
    "stream",
    "write",
]
