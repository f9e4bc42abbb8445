from .directory import CentralDirectoryInfo, find_end_of_central_directory, read_central_directory
from .stream import (
    AsyncZipStreamReader,
    ZipStreamEntry,
    ZipStreamReader,
    read_zipfile_from_async_stream,
    read_zipfile_from_stream,
)

__all__ = [
    "CentralDirectoryInfo",
    "find_end_of_central_directory",
    "read_central_directory",
    "AsyncZipStreamReader",
    "ZipStreamEntry",
    "ZipStreamReader",
    "read_zipfile_from_async_stream",
    "read_zipfile_from_stream",
]
