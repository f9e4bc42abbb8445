"""Types for creating ZIP archives, plus unstable option builders."""

from __future__ import annotations

from typing import Union

from ..write import EncryptWith, FileOptions, ZipWriter

__all__ = [
    "EncryptWith",
    "FileOptions",
    "ZipWriter",
    "with_deprecated_encryption",
]


def with_deprecated_encryption(options: FileOptions, password: Union[str, bytes, bytearray, memoryview]) -> FileOptions:
    """Write the file with the given password using the deprecated ZipCrypto algorithm.

    This is not recommended for new archives, as ZipCrypto is not secure.
    ``password`` may be any bytes-like object or a str (encoded as UTF-8); its
    content is passed through without validation.
    """
    if isinstance(password, str):
        raw = password.encode("utf-8")
    else:
        raw = bytes(memoryview(password))
    return options._with_deprecated_encryption(raw)
