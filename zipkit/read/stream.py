"""Sequential reading of ZIP archives from non-seekable streams.

Entries are decoded straight from their local file headers, so the central
directory is never consulted; reading stops as soon as its first record is
reached. Entries whose sizes are deferred to a trailing data descriptor
cannot be streamed and are rejected.
"""

from __future__ import annotations

import logging
import os
import zlib
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, BinaryIO, Iterator, Optional, Union

from .. import aes, aio
from ..aes import AE_1
from ..codec import Codec
from ..constants import (
    LOCAL_FILE_HEADER_SIGNATURE,
    CENTRAL_DIRECTORY_HEADER_SIGNATURE,
    END_OF_CENTRAL_DIRECTORY_SIGNATURE,
    ZIP64_END_OF_CENTRAL_DIRECTORY_SIGNATURE,
    METHOD_AES,
    FLAG_ENCRYPTED,
    FLAG_DATA_DESCRIPTOR,
    FLAG_UTF8,
    EXTRA_ZIP64,
    EXTRA_AES,
    U32_MAX,
)
from ..endian import read_exact, read_u32_le
from ..errors import InvalidArchiveError, InvalidPasswordError, UnsupportedArchiveError
from ..pathutil import safe_join
from ..records import (
    LocalFileHeader,
    find_extra_field,
    from_dos_datetime,
    parse_aes_extra_field,
    parse_zip64_extra_field,
)


logger = logging.getLogger(__name__)

_END_SIGNATURES = (
    CENTRAL_DIRECTORY_HEADER_SIGNATURE,
    END_OF_CENTRAL_DIRECTORY_SIGNATURE,
    ZIP64_END_OF_CENTRAL_DIRECTORY_SIGNATURE,
)


@dataclass
class ZipStreamEntry:
    name: str
    method: int
    flags: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    last_modified: datetime
    extra_field: bytes
    data: bytes

    @property
    def is_dir(self) -> bool:
        return self.name.endswith("/")

    @property
    def encrypted(self) -> bool:
        return bool(self.flags & FLAG_ENCRYPTED)


def _entry_sizes(header: LocalFileHeader) -> tuple:
    compressed = header.compressed_size
    uncompressed = header.uncompressed_size
    if compressed == U32_MAX or uncompressed == U32_MAX:
        payload = find_extra_field(header.extra_field, EXTRA_ZIP64)
        if payload is None:
            raise InvalidArchiveError("Saturated sizes without a zip64 extra field")
        values = parse_zip64_extra_field(
            payload,
            uncompressed=uncompressed == U32_MAX,
            compressed=compressed == U32_MAX,
        )
        if uncompressed == U32_MAX:
            uncompressed = values.pop(0)
        if compressed == U32_MAX:
            compressed = values.pop(0)
    return compressed, uncompressed


def _check_streamable(header: LocalFileHeader) -> None:
    if header.flags & FLAG_DATA_DESCRIPTOR:
        raise UnsupportedArchiveError(
            "The file length is not available in the local header; entry cannot be streamed"
        )


def _decode_entry(header: LocalFileHeader, sizes: tuple, payload: bytes, password: Optional[bytes]) -> ZipStreamEntry:
    compressed, uncompressed = sizes
    enc = "utf-8" if header.flags & FLAG_UTF8 else "cp437"
    name = header.file_name.decode(enc)
    method = header.method
    check_crc = True
    if header.flags & FLAG_ENCRYPTED:
        if method != METHOD_AES:
            raise UnsupportedArchiveError(f"Legacy ZipCrypto entry cannot be decrypted: {name}")
        extra = find_extra_field(header.extra_field, EXTRA_AES)
        if extra is None:
            raise InvalidArchiveError(f"AES entry without AES extra field: {name}")
        vendor_version, mode, method = parse_aes_extra_field(extra)
        if password is None:
            raise InvalidPasswordError(f"Password required for encrypted entry: {name}")
        payload = aes.decrypt(payload, password, mode)
        check_crc = vendor_version == AE_1
    data = Codec(method).decompress(payload)
    if len(data) != uncompressed:
        raise InvalidArchiveError(f"Size mismatch for {name}: expected {uncompressed}, got {len(data)}")
    if check_crc and (zlib.crc32(data) & U32_MAX) != header.crc32:
        raise InvalidArchiveError(f"Invalid checksum for {name}")
    logger.debug("read %s (%d bytes)", name, len(data))
    return ZipStreamEntry(
        name=name,
        method=method,
        flags=header.flags,
        crc32=header.crc32,
        compressed_size=compressed,
        uncompressed_size=uncompressed,
        last_modified=from_dos_datetime(header.mod_date, header.mod_time),
        extra_field=header.extra_field,
        data=data,
    )


def _check_signature(signature: int) -> bool:
    """True for a local file header, False once the central directory starts."""
    if signature in _END_SIGNATURES:
        return False
    if signature != LOCAL_FILE_HEADER_SIGNATURE:
        raise InvalidArchiveError(f"Invalid local file header signature: {signature:#010x}")
    return True


def read_zipfile_from_stream(f: BinaryIO, password: Optional[bytes] = None) -> Optional[ZipStreamEntry]:
    """Read the next entry from ``f``, or return None at the central directory."""
    if not _check_signature(read_u32_le(f)):
        return None
    header = LocalFileHeader.read_from(f)
    _check_streamable(header)
    sizes = _entry_sizes(header)
    payload = read_exact(f, sizes[0])
    return _decode_entry(header, sizes, payload, password)


async def read_zipfile_from_async_stream(
    reader: aio.AsyncByteSource, password: Optional[bytes] = None
) -> Optional[ZipStreamEntry]:
    """Suspending counterpart of :func:`read_zipfile_from_stream`."""
    if not _check_signature(await aio.read_u32_le(reader)):
        return None
    header = await LocalFileHeader.read_from_async(reader)
    _check_streamable(header)
    sizes = _entry_sizes(header)
    payload = await aio.read_exact(reader, sizes[0])
    return _decode_entry(header, sizes, payload, password)


def _password_bytes(password: Union[str, bytes, None]) -> Optional[bytes]:
    if isinstance(password, str):
        return password.encode("utf-8")
    return password


class ZipStreamReader:
    """Iterates over the entries of a ZIP stream in archive order."""

    def __init__(self, f: BinaryIO, password: Union[str, bytes, None] = None):
        self.f = f
        self.password = _password_bytes(password)

    def __iter__(self) -> Iterator[ZipStreamEntry]:
        while True:
            entry = read_zipfile_from_stream(self.f, self.password)
            if entry is None:
                return
            yield entry

    def extract(self, directory: str) -> int:
        """Write every entry below ``directory``; returns the number of entries."""
        count = 0
        for entry in self:
            dest = safe_join(directory, entry.name)
            if entry.is_dir:
                os.makedirs(dest, exist_ok=True)
            else:
                os.makedirs(os.path.dirname(dest) or directory, exist_ok=True)
                with open(dest, "wb") as out:
                    out.write(entry.data)
            count += 1
        return count


class AsyncZipStreamReader:
    def __init__(self, reader: aio.AsyncByteSource, password: Union[str, bytes, None] = None):
        self.reader = reader
        self.password = _password_bytes(password)

    def __aiter__(self) -> AsyncIterator[ZipStreamEntry]:
        return self

    async def __anext__(self) -> ZipStreamEntry:
        entry = await read_zipfile_from_async_stream(self.reader, self.password)
        if entry is None:
            raise StopAsyncIteration
        return entry
