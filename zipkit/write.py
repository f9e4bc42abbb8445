"""Types for creating ZIP archives."""

from __future__ import annotations

import logging
import os
import stat
import zlib
from dataclasses import dataclass, replace
from datetime import datetime
from typing import BinaryIO, List, Optional, Set, Union

from . import aes
from .aes import AesMode
from .codec import Codec
from .constants import (
    METHOD_STORED,
    METHOD_DEFLATED,
    METHOD_ZSTD,
    METHOD_AES,
    FLAG_ENCRYPTED,
    FLAG_UTF8,
    VERSION_DEFAULT,
    VERSION_DEFLATE,
    VERSION_ZIP64,
    VERSION_AES,
    VERSION_ZSTD,
    SYSTEM_UNIX,
    U16_MAX,
    U32_MAX,
    MAX_COMMENT_SIZE,
    DEFAULT_FILE_PERMISSIONS,
    DEFAULT_DIR_PERMISSIONS,
)
from .endian import LittleEndianWriteExt, write_all
from .errors import UnsupportedArchiveError
from .pathutil import dir_name, norm_path
from .records import (
    CentralDirectoryHeader,
    EndOfCentralDirectory,
    LocalFileHeader,
    Zip64EndOfCentralDirectory,
    Zip64EndOfCentralDirectoryLocator,
    aes_extra_field,
    to_dos_datetime,
    zip64_extra_field,
)


logger = logging.getLogger(__name__)

_MSDOS_DIR_ATTR = 0x10


@dataclass(frozen=True)
class EncryptWith:
    """Entry encryption settings. ``aes_mode=None`` selects legacy ZipCrypto."""

    password: bytes
    aes_mode: Optional[AesMode] = None

    @property
    def is_legacy(self) -> bool:
        return self.aes_mode is None


@dataclass(frozen=True)
class FileOptions:
    """Per-entry write options.

    Values are immutable; every ``with_*`` method returns an updated copy and
    leaves the original untouched.
    """

    compression_method: int = METHOD_DEFLATED
    compression_level: Optional[int] = None
    last_modified_time: Optional[datetime] = None
    permissions: Optional[int] = None
    large_file: bool = False
    encrypt_with: Optional[EncryptWith] = None

    def with_compression_method(self, method: int) -> "FileOptions":
        return replace(self, compression_method=method)

    def with_compression_level(self, level: Optional[int]) -> "FileOptions":
        return replace(self, compression_level=level)

    def with_last_modified_time(self, when: datetime) -> "FileOptions":
        to_dos_datetime(when)
        return replace(self, last_modified_time=when)

    def with_unix_permissions(self, mode: int) -> "FileOptions":
        return replace(self, permissions=mode & 0o777)

    def with_large_file(self, large: bool) -> "FileOptions":
        """Force zip64 headers so the entry may exceed 4 GiB."""
        return replace(self, large_file=large)

    def with_aes_encryption(self, mode: AesMode, password: Union[str, bytes]) -> "FileOptions":
        if isinstance(password, str):
            password = password.encode("utf-8")
        return replace(self, encrypt_with=EncryptWith(password=bytes(password), aes_mode=AesMode(mode)))

    def _with_deprecated_encryption(self, password: bytes) -> "FileOptions":
        # Public entry point lives in zipkit.unstable.write
        if not isinstance(password, bytes):
            raise TypeError("password must be bytes")
        return replace(self, encrypt_with=EncryptWith(password=password))


class _CountingWriter(LittleEndianWriteExt):
    """Tracks the archive offset so non-seekable sinks work."""

    def __init__(self, raw: BinaryIO):
        self.raw = raw
        self.offset = 0

    def write(self, data: bytes) -> Optional[int]:
        written = self.raw.write(data)
        if written is not None:
            self.offset += written
        return written


def _version_needed(method: int, zip64: bool, encrypted: bool) -> int:
    version = VERSION_DEFAULT
    if method == METHOD_DEFLATED:
        version = VERSION_DEFLATE
    elif method == METHOD_ZSTD:
        version = VERSION_ZSTD
    if zip64:
        version = max(version, VERSION_ZIP64)
    if encrypted:
        version = max(version, VERSION_AES)
    return version


class ZipWriter:
    """Writes a ZIP archive, one whole entry at a time.

    ``target`` is either a filesystem path (opened and closed by the writer)
    or a binary stream owned by the caller. Streams need not be seekable.
    """

    def __init__(self, target: Union[str, "os.PathLike[str]", BinaryIO], *, comment: bytes = b""):
        if len(comment) > MAX_COMMENT_SIZE:
            raise ValueError("archive comment too long")
        self._owns_stream = isinstance(target, (str, os.PathLike))
        raw = open(target, "wb") if self._owns_stream else target
        self.f = _CountingWriter(raw)
        self.comment = comment
        self.entries: List[CentralDirectoryHeader] = []
        self._names: Set[bytes] = set()
        self._finished = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.finish()
        self.close()

    def close(self):
        if self._owns_stream and not self.f.raw.closed:
            self.f.raw.close()

    def _check_name(self, name: str) -> bytes:
        # Names are only taken once the entry is fully written
        if self._finished:
            raise RuntimeError("Archive already finished")
        raw_name = name.encode("utf-8")
        if raw_name in self._names:
            raise ValueError(f"Duplicate member name: {name}")
        return raw_name

    def add_directory(self, name: str, options: Optional[FileOptions] = None) -> None:
        options = options or FileOptions()
        name = dir_name(name)
        raw_name = self._check_name(name)
        perms = options.permissions if options.permissions is not None else DEFAULT_DIR_PERMISSIONS
        external_attr = ((stat.S_IFDIR | perms) << 16) | _MSDOS_DIR_ATTR
        self._write_entry(raw_name, b"", 0, 0, METHOD_STORED, METHOD_STORED, options, external_attr, extra=b"", flags=0)
        logger.debug("added directory %s", name)

    def write_file(self, name: str, data: bytes, options: Optional[FileOptions] = None) -> None:
        """Compress (and optionally encrypt) ``data`` and append it as ``name``."""
        options = options or FileOptions()
        enc = options.encrypt_with
        if enc is not None and enc.is_legacy:
            raise UnsupportedArchiveError(
                "Legacy ZipCrypto encryption is not implemented; use with_aes_encryption"
            )
        name = norm_path(name)
        raw_name = self._check_name(name)
        method = options.compression_method
        payload = Codec(method, options.compression_level).compress(data)
        crc = zlib.crc32(data) & U32_MAX
        flags = 0
        extra = b""
        header_method = method
        if enc is not None:
            payload = aes.encrypt(payload, enc.password, enc.aes_mode)
            extra = aes_extra_field(enc.aes_mode, method)
            header_method = METHOD_AES
            flags |= FLAG_ENCRYPTED
            crc = 0  # AE-2 relies on the authentication code
        perms = options.permissions if options.permissions is not None else DEFAULT_FILE_PERMISSIONS
        external_attr = (stat.S_IFREG | perms) << 16
        self._write_entry(raw_name, payload, len(data), crc, method, header_method, options, external_attr, extra=extra, flags=flags)
        logger.debug("added %s (%d -> %d bytes, method %d)", name, len(data), len(payload), method)

    def _write_entry(
        self,
        raw_name: bytes,
        payload: bytes,
        uncompressed_size: int,
        crc: int,
        method: int,
        header_method: int,
        options: FileOptions,
        external_attr: int,
        *,
        extra: bytes,
        flags: int,
    ) -> None:
        if not raw_name.isascii():
            flags |= FLAG_UTF8
        when = options.last_modified_time or datetime.now()
        dos_date, dos_time = to_dos_datetime(when)
        compressed_size = len(payload)
        zip64 = options.large_file or uncompressed_size >= U32_MAX or compressed_size >= U32_MAX
        version = _version_needed(method, zip64, bool(flags & FLAG_ENCRYPTED))

        offset = self.f.offset
        local_extra = extra
        if zip64:
            local_extra = zip64_extra_field(uncompressed_size, compressed_size) + extra
        LocalFileHeader(
            version_needed=version,
            flags=flags,
            method=header_method,
            mod_time=dos_time,
            mod_date=dos_date,
            crc32=crc,
            compressed_size=U32_MAX if zip64 else compressed_size,
            uncompressed_size=U32_MAX if zip64 else uncompressed_size,
            file_name=raw_name,
            extra_field=local_extra,
        ).write_to(self.f)
        write_all(self.f, payload)

        # Central directory only carries zip64 values for saturated fields
        z64_values = []
        if uncompressed_size >= U32_MAX:
            z64_values.append(uncompressed_size)
        if compressed_size >= U32_MAX:
            z64_values.append(compressed_size)
        if offset >= U32_MAX:
            z64_values.append(offset)
        central_extra = (zip64_extra_field(*z64_values) if z64_values else b"") + extra
        if z64_values:
            version = max(version, VERSION_ZIP64)
        self.entries.append(
            CentralDirectoryHeader(
                version_made_by=(SYSTEM_UNIX << 8) | version,
                version_needed=version,
                flags=flags,
                method=header_method,
                mod_time=dos_time,
                mod_date=dos_date,
                crc32=crc,
                compressed_size=min(compressed_size, U32_MAX),
                uncompressed_size=min(uncompressed_size, U32_MAX),
                file_name=raw_name,
                extra_field=central_extra,
                external_attr=external_attr,
                local_header_offset=min(offset, U32_MAX),
            )
        )
        self._names.add(raw_name)

    def finish(self) -> None:
        """Write the central directory and end records. Idempotent."""
        if self._finished:
            return
        self._finished = True
        cd_offset = self.f.offset
        for header in self.entries:
            header.write_to(self.f)
        cd_size = self.f.offset - cd_offset
        count = len(self.entries)
        if count >= U16_MAX or cd_size >= U32_MAX or cd_offset >= U32_MAX:
            zip64_offset = self.f.offset
            Zip64EndOfCentralDirectory(
                version_made_by=(SYSTEM_UNIX << 8) | VERSION_ZIP64,
                version_needed=VERSION_ZIP64,
                disk_number=0,
                cd_disk=0,
                entries_on_disk=count,
                entries_total=count,
                cd_size=cd_size,
                cd_offset=cd_offset,
            ).write_to(self.f)
            Zip64EndOfCentralDirectoryLocator(zip64_eocd_offset=zip64_offset).write_to(self.f)
            logger.debug("wrote zip64 end of central directory at %d", zip64_offset)
        EndOfCentralDirectory(
            disk_number=0,
            cd_disk=0,
            entries_on_disk=min(count, U16_MAX),
            entries_total=min(count, U16_MAX),
            cd_size=min(cd_size, U32_MAX),
            cd_offset=min(cd_offset, U32_MAX),
            comment=self.comment,
        ).write_to(self.f)
        flush = getattr(self.f.raw, "flush", None)
        if flush is not None:
            flush()
        logger.debug("finished archive with %d entries", count)
