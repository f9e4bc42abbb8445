from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass
from typing import BinaryIO, List, Optional

from ..constants import (
    CENTRAL_DIRECTORY_HEADER_SIGNATURE,
    ZIP64_END_OF_CENTRAL_DIRECTORY_SIGNATURE,
    ZIP64_END_OF_CENTRAL_DIRECTORY_LOCATOR_SIGNATURE,
    EOCD_SIZE,
    ZIP64_LOCATOR_SIZE,
    MAX_COMMENT_SIZE,
    EXTRA_ZIP64,
    U32_MAX,
)
from ..endian import read_u32_le
from ..errors import InvalidArchiveError, UnexpectedEofError
from ..records import (
    CentralDirectoryHeader,
    EndOfCentralDirectory,
    Zip64EndOfCentralDirectory,
    Zip64EndOfCentralDirectoryLocator,
    find_extra_field,
    parse_zip64_extra_field,
)


logger = logging.getLogger(__name__)

_EOCD_MAGIC = b"PK\x05\x06"


@dataclass
class CentralDirectoryInfo:
    entries_total: int
    cd_size: int
    cd_offset: int
    comment: bytes
    zip64: bool


def find_end_of_central_directory(f: BinaryIO) -> CentralDirectoryInfo:
    """Locate the end records of a seekable archive and resolve zip64 values."""
    f.seek(0, os.SEEK_END)
    file_size = f.tell()
    if file_size < EOCD_SIZE:
        raise InvalidArchiveError("File too small to be a ZIP archive")
    tail_len = min(file_size, EOCD_SIZE + MAX_COMMENT_SIZE)
    f.seek(file_size - tail_len)
    tail = f.read(tail_len)
    pos = tail.rfind(_EOCD_MAGIC)
    while pos >= 0:
        rec = io.BytesIO(tail[pos + 4 :])
        try:
            eocd = EndOfCentralDirectory.read_from(rec)
        except UnexpectedEofError:
            eocd = None
        # A stray magic inside the comment would not end exactly at EOF
        if eocd is not None and pos + EOCD_SIZE + len(eocd.comment) == tail_len:
            break
        pos = tail.rfind(_EOCD_MAGIC, 0, pos)
    else:
        raise InvalidArchiveError("End of central directory record not found")
    eocd_offset = file_size - tail_len + pos

    info = CentralDirectoryInfo(
        entries_total=eocd.entries_total,
        cd_size=eocd.cd_size,
        cd_offset=eocd.cd_offset,
        comment=eocd.comment,
        zip64=False,
    )
    locator = _read_zip64_locator(f, eocd_offset)
    if locator is not None:
        f.seek(locator.zip64_eocd_offset)
        if read_u32_le(f) != ZIP64_END_OF_CENTRAL_DIRECTORY_SIGNATURE:
            raise InvalidArchiveError("Invalid zip64 end of central directory signature")
        z64 = Zip64EndOfCentralDirectory.read_from(f)
        info.entries_total = z64.entries_total
        info.cd_size = z64.cd_size
        info.cd_offset = z64.cd_offset
        info.zip64 = True
    elif eocd.needs_zip64:
        raise InvalidArchiveError("Saturated end record without a zip64 locator")
    logger.debug("central directory: %d entries at %d", info.entries_total, info.cd_offset)
    return info


def _read_zip64_locator(f: BinaryIO, eocd_offset: int) -> Optional[Zip64EndOfCentralDirectoryLocator]:
    if eocd_offset < ZIP64_LOCATOR_SIZE:
        return None
    f.seek(eocd_offset - ZIP64_LOCATOR_SIZE)
    if read_u32_le(f) != ZIP64_END_OF_CENTRAL_DIRECTORY_LOCATOR_SIGNATURE:
        return None
    return Zip64EndOfCentralDirectoryLocator.read_from(f)


def _resolve_zip64(header: CentralDirectoryHeader) -> None:
    saturated = (
        header.uncompressed_size == U32_MAX,
        header.compressed_size == U32_MAX,
        header.local_header_offset == U32_MAX,
    )
    if not any(saturated):
        return
    payload = find_extra_field(header.extra_field, EXTRA_ZIP64)
    if payload is None:
        raise InvalidArchiveError("Saturated central directory values without a zip64 extra field")
    values = parse_zip64_extra_field(
        payload, uncompressed=saturated[0], compressed=saturated[1], offset=saturated[2]
    )
    if saturated[0]:
        header.uncompressed_size = values.pop(0)
    if saturated[1]:
        header.compressed_size = values.pop(0)
    if saturated[2]:
        header.local_header_offset = values.pop(0)


def read_central_directory(f: BinaryIO) -> List[CentralDirectoryHeader]:
    """Return the central directory headers with zip64 values already applied."""
    info = find_end_of_central_directory(f)
    f.seek(info.cd_offset)
    headers: List[CentralDirectoryHeader] = []
    for _ in range(info.entries_total):
        if read_u32_le(f) != CENTRAL_DIRECTORY_HEADER_SIGNATURE:
            raise InvalidArchiveError("Invalid central directory header signature")
        header = CentralDirectoryHeader.read_from(f)
        _resolve_zip64(header)
        headers.append(header)
    return headers
