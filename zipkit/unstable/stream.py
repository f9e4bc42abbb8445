"""Provides high level API for reading from a stream."""

from ..read.stream import (
    AsyncZipStreamReader,
    ZipStreamEntry,
    ZipStreamReader,
    read_zipfile_from_async_stream,
    read_zipfile_from_stream,
)

__all__ = [
    "AsyncZipStreamReader",
    "ZipStreamEntry",
    "ZipStreamReader",
    "read_zipfile_from_async_stream",
    "read_zipfile_from_stream",
]
