from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Iterator, List, Optional, Tuple

from . import aio
from .aes import AE_1, AE_2, VENDOR_ID, AesMode
from .constants import (
    LOCAL_FILE_HEADER_SIGNATURE,
    CENTRAL_DIRECTORY_HEADER_SIGNATURE,
    END_OF_CENTRAL_DIRECTORY_SIGNATURE,
    ZIP64_END_OF_CENTRAL_DIRECTORY_SIGNATURE,
    ZIP64_END_OF_CENTRAL_DIRECTORY_LOCATOR_SIGNATURE,
    EXTRA_ZIP64,
    EXTRA_AES,
    U16_MAX,
    U32_MAX,
    ZIP64_EOCD_SIZE,
)
from .endian import (
    read_exact,
    read_u16_le,
    read_u32_le,
    read_u64_le,
    write_all,
    write_u16_le,
    write_u32_le,
    write_u64_le,
)
from .errors import InvalidArchiveError, UnexpectedEofError


# Local file header (30 bytes + name + extra)
#  - signature u32
#  - version_needed u16, flags u16, method u16
#  - mod_time u16, mod_date u16
#  - crc32 u32, compressed_size u32, uncompressed_size u32
#  - name_len u16, extra_len u16
@dataclass
class LocalFileHeader:
    version_needed: int
    flags: int
    method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    file_name: bytes
    extra_field: bytes = b""

    def write_to(self, f: BinaryIO) -> None:
        write_u32_le(f, LOCAL_FILE_HEADER_SIGNATURE)
        write_u16_le(f, self.version_needed)
        write_u16_le(f, self.flags)
        write_u16_le(f, self.method)
        write_u16_le(f, self.mod_time)
        write_u16_le(f, self.mod_date)
        write_u32_le(f, self.crc32)
        write_u32_le(f, self.compressed_size)
        write_u32_le(f, self.uncompressed_size)
        write_u16_le(f, len(self.file_name))
        write_u16_le(f, len(self.extra_field))
        write_all(f, self.file_name)
        write_all(f, self.extra_field)

    @classmethod
    def read_from(cls, f: BinaryIO) -> "LocalFileHeader":
        """Parse the header body; the caller has already consumed the signature."""
        version_needed = read_u16_le(f)
        flags = read_u16_le(f)
        method = read_u16_le(f)
        mod_time = read_u16_le(f)
        mod_date = read_u16_le(f)
        crc32 = read_u32_le(f)
        compressed_size = read_u32_le(f)
        uncompressed_size = read_u32_le(f)
        name_len = read_u16_le(f)
        extra_len = read_u16_le(f)
        file_name = read_exact(f, name_len)
        extra_field = read_exact(f, extra_len)
        return cls(version_needed, flags, method, mod_time, mod_date, crc32, compressed_size, uncompressed_size, file_name, extra_field)

    @classmethod
    async def read_from_async(cls, reader: aio.AsyncByteSource) -> "LocalFileHeader":
        version_needed = await aio.read_u16_le(reader)
        flags = await aio.read_u16_le(reader)
        method = await aio.read_u16_le(reader)
        mod_time = await aio.read_u16_le(reader)
        mod_date = await aio.read_u16_le(reader)
        crc32 = await aio.read_u32_le(reader)
        compressed_size = await aio.read_u32_le(reader)
        uncompressed_size = await aio.read_u32_le(reader)
        name_len = await aio.read_u16_le(reader)
        extra_len = await aio.read_u16_le(reader)
        file_name = await aio.read_exact(reader, name_len)
        extra_field = await aio.read_exact(reader, extra_len)
        return cls(version_needed, flags, method, mod_time, mod_date, crc32, compressed_size, uncompressed_size, file_name, extra_field)


@dataclass
class CentralDirectoryHeader:
    version_made_by: int
    version_needed: int
    flags: int
    method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    file_name: bytes
    extra_field: bytes = b""
    comment: bytes = b""
    disk_start: int = 0
    internal_attr: int = 0
    external_attr: int = 0
    local_header_offset: int = 0

    def write_to(self, f: BinaryIO) -> None:
        write_u32_le(f, CENTRAL_DIRECTORY_HEADER_SIGNATURE)
        write_u16_le(f, self.version_made_by)
        write_u16_le(f, self.version_needed)
        write_u16_le(f, self.flags)
        write_u16_le(f, self.method)
        write_u16_le(f, self.mod_time)
        write_u16_le(f, self.mod_date)
        write_u32_le(f, self.crc32)
        write_u32_le(f, self.compressed_size)
        write_u32_le(f, self.uncompressed_size)
        write_u16_le(f, len(self.file_name))
        write_u16_le(f, len(self.extra_field))
        write_u16_le(f, len(self.comment))
        write_u16_le(f, self.disk_start)
        write_u16_le(f, self.internal_attr)
        write_u32_le(f, self.external_attr)
        write_u32_le(f, self.local_header_offset)
        write_all(f, self.file_name)
        write_all(f, self.extra_field)
        write_all(f, self.comment)

    @classmethod
    def read_from(cls, f: BinaryIO) -> "CentralDirectoryHeader":
        version_made_by = read_u16_le(f)
        version_needed = read_u16_le(f)
        flags = read_u16_le(f)
        method = read_u16_le(f)
        mod_time = read_u16_le(f)
        mod_date = read_u16_le(f)
        crc32 = read_u32_le(f)
        compressed_size = read_u32_le(f)
        uncompressed_size = read_u32_le(f)
        name_len = read_u16_le(f)
        extra_len = read_u16_le(f)
        comment_len = read_u16_le(f)
        disk_start = read_u16_le(f)
        internal_attr = read_u16_le(f)
        external_attr = read_u32_le(f)
        local_header_offset = read_u32_le(f)
        file_name = read_exact(f, name_len)
        extra_field = read_exact(f, extra_len)
        comment = read_exact(f, comment_len)
        return cls(
            version_made_by=version_made_by,
            version_needed=version_needed,
            flags=flags,
            method=method,
            mod_time=mod_time,
            mod_date=mod_date,
            crc32=crc32,
            compressed_size=compressed_size,
            uncompressed_size=uncompressed_size,
            file_name=file_name,
            extra_field=extra_field,
            comment=comment,
            disk_start=disk_start,
            internal_attr=internal_attr,
            external_attr=external_attr,
            local_header_offset=local_header_offset,
        )


@dataclass
class EndOfCentralDirectory:
    disk_number: int
    cd_disk: int
    entries_on_disk: int
    entries_total: int
    cd_size: int
    cd_offset: int
    comment: bytes = b""

    def write_to(self, f: BinaryIO) -> None:
        write_u32_le(f, END_OF_CENTRAL_DIRECTORY_SIGNATURE)
        write_u16_le(f, self.disk_number)
        write_u16_le(f, self.cd_disk)
        write_u16_le(f, self.entries_on_disk)
        write_u16_le(f, self.entries_total)
        write_u32_le(f, self.cd_size)
        write_u32_le(f, self.cd_offset)
        write_u16_le(f, len(self.comment))
        write_all(f, self.comment)

    @classmethod
    def read_from(cls, f: BinaryIO) -> "EndOfCentralDirectory":
        disk_number = read_u16_le(f)
        cd_disk = read_u16_le(f)
        entries_on_disk = read_u16_le(f)
        entries_total = read_u16_le(f)
        cd_size = read_u32_le(f)
        cd_offset = read_u32_le(f)
        comment_len = read_u16_le(f)
        comment = read_exact(f, comment_len)
        return cls(disk_number, cd_disk, entries_on_disk, entries_total, cd_size, cd_offset, comment)

    @property
    def needs_zip64(self) -> bool:
        return (
            self.entries_total == U16_MAX
            or self.entries_on_disk == U16_MAX
            or self.cd_size == U32_MAX
            or self.cd_offset == U32_MAX
        )


@dataclass
class Zip64EndOfCentralDirectory:
    version_made_by: int
    version_needed: int
    disk_number: int
    cd_disk: int
    entries_on_disk: int
    entries_total: int
    cd_size: int
    cd_offset: int

    def write_to(self, f: BinaryIO) -> None:
        write_u32_le(f, ZIP64_END_OF_CENTRAL_DIRECTORY_SIGNATURE)
        # Size of the remaining record, excluding signature and this field
        write_u64_le(f, ZIP64_EOCD_SIZE - 12)
        write_u16_le(f, self.version_made_by)
        write_u16_le(f, self.version_needed)
        write_u32_le(f, self.disk_number)
        write_u32_le(f, self.cd_disk)
        write_u64_le(f, self.entries_on_disk)
        write_u64_le(f, self.entries_total)
        write_u64_le(f, self.cd_size)
        write_u64_le(f, self.cd_offset)

    @classmethod
    def read_from(cls, f: BinaryIO) -> "Zip64EndOfCentralDirectory":
        record_size = read_u64_le(f)
        if record_size < ZIP64_EOCD_SIZE - 12:
            raise InvalidArchiveError("zip64 end of central directory record too short")
        rec = cls(
            version_made_by=read_u16_le(f),
            version_needed=read_u16_le(f),
            disk_number=read_u32_le(f),
            cd_disk=read_u32_le(f),
            entries_on_disk=read_u64_le(f),
            entries_total=read_u64_le(f),
            cd_size=read_u64_le(f),
            cd_offset=read_u64_le(f),
        )
        # Extensible data sector is not interpreted
        read_exact(f, record_size - (ZIP64_EOCD_SIZE - 12))
        return rec


@dataclass
class Zip64EndOfCentralDirectoryLocator:
    zip64_eocd_offset: int
    disk_with_zip64_eocd: int = 0
    total_disks: int = 1

    def write_to(self, f: BinaryIO) -> None:
        write_u32_le(f, ZIP64_END_OF_CENTRAL_DIRECTORY_LOCATOR_SIGNATURE)
        write_u32_le(f, self.disk_with_zip64_eocd)
        write_u64_le(f, self.zip64_eocd_offset)
        write_u32_le(f, self.total_disks)

    @classmethod
    def read_from(cls, f: BinaryIO) -> "Zip64EndOfCentralDirectoryLocator":
        disk = read_u32_le(f)
        offset = read_u64_le(f)
        total = read_u32_le(f)
        return cls(zip64_eocd_offset=offset, disk_with_zip64_eocd=disk, total_disks=total)


# Extra field blocks: tag u16 || size u16 || payload[size]


def build_extra_field(tag: int, payload: bytes) -> bytes:
    if len(payload) > U16_MAX:
        raise ValueError("extra field payload too large")
    buf = io.BytesIO()
    write_u16_le(buf, tag)
    write_u16_le(buf, len(payload))
    write_all(buf, payload)
    return buf.getvalue()


def iter_extra_fields(data: bytes) -> Iterator[Tuple[int, bytes]]:
    f = io.BytesIO(data)
    while f.tell() < len(data):
        try:
            tag = read_u16_le(f)
            size = read_u16_le(f)
            payload = read_exact(f, size)
        except UnexpectedEofError as exc:
            raise InvalidArchiveError("Corrupt extra field block") from exc
        yield tag, payload


def find_extra_field(data: bytes, tag: int) -> Optional[bytes]:
    for t, payload in iter_extra_fields(data):
        if t == tag:
            return payload
    return None


def zip64_extra_field(*values: int) -> bytes:
    """Zip64 extended information block.

    ``values`` must follow the fixed field order (uncompressed size, compressed
    size, local header offset) and include only the fields whose header
    counterpart is saturated.
    """
    buf = io.BytesIO()
    for v in values:
        write_u64_le(buf, v)
    return build_extra_field(EXTRA_ZIP64, buf.getvalue())


def parse_zip64_extra_field(
    payload: bytes,
    *,
    uncompressed: bool,
    compressed: bool,
    offset: bool = False,
) -> List[int]:
    """Returns the u64 values present for each requested field, in field order."""
    f = io.BytesIO(payload)
    out: List[int] = []
    try:
        for wanted in (uncompressed, compressed, offset):
            if wanted:
                out.append(read_u64_le(f))
    except UnexpectedEofError as exc:
        raise InvalidArchiveError("zip64 extra field too short") from exc
    return out


# AES extra: vendor_version u16 || vendor_id[2] || strength u8 || method u16


def aes_extra_field(mode: AesMode, method: int, vendor_version: int = AE_2) -> bytes:
    buf = io.BytesIO()
    write_u16_le(buf, vendor_version)
    write_all(buf, VENDOR_ID)
    write_all(buf, bytes([int(mode)]))
    write_u16_le(buf, method)
    return build_extra_field(EXTRA_AES, buf.getvalue())


def parse_aes_extra_field(payload: bytes) -> Tuple[int, AesMode, int]:
    """Returns (vendor_version, mode, actual compression method)."""
    f = io.BytesIO(payload)
    try:
        vendor_version = read_u16_le(f)
        vendor_id = read_exact(f, 2)
        strength = read_exact(f, 1)[0]
        method = read_u16_le(f)
    except UnexpectedEofError as exc:
        raise InvalidArchiveError("AES extra field too short") from exc
    if vendor_id != VENDOR_ID or vendor_version not in (AE_1, AE_2):
        raise InvalidArchiveError("Unknown AES extra field vendor")
    try:
        mode = AesMode(strength)
    except ValueError as exc:
        raise InvalidArchiveError(f"Unknown AES strength: {strength}") from exc
    return vendor_version, mode, method


# MS-DOS timestamps: 2 second resolution, years 1980..2107


def to_dos_datetime(dt: datetime) -> Tuple[int, int]:
    """Returns (dos_date, dos_time)."""
    if not 1980 <= dt.year <= 2107:
        raise ValueError(f"MS-DOS timestamps cover 1980..2107, got {dt.year}")
    dos_date = ((dt.year - 1980) << 9) | (dt.month << 5) | dt.day
    dos_time = (dt.hour << 11) | (dt.minute << 5) | (dt.second // 2)
    return dos_date, dos_time


def from_dos_datetime(dos_date: int, dos_time: int) -> datetime:
    try:
        return datetime(
            1980 + (dos_date >> 9),
            (dos_date >> 5) & 0x0F,
            dos_date & 0x1F,
            dos_time >> 11,
            (dos_time >> 5) & 0x3F,
            min((dos_time & 0x1F) * 2, 59),
        )
    except ValueError:
        # Zeroed or out-of-range fields from sloppy writers
        return datetime(1980, 1, 1)
