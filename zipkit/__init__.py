"""
zipkit: little-endian stream helpers and a compact ZIP codec built on them.

Features:

- Fixed-width little-endian integer reads/writes (u16/u32/u64, plus u128 writes)
  for any blocking byte stream (``zipkit.endian``) or asyncio stream
  (``zipkit.aio``), as functions, mixins or wrapping adapters.
- ZIP record codecs: local file headers, central directory, end records and
  extra-field blocks including zip64 (``zipkit.records``).
- A whole-entry ZIP writer with stored/deflate/zstd compression and WinZip AES
  encryption (``zipkit.write``).
- Streaming and central-directory readers (``zipkit.read``).
- Unstable entry points, including the legacy ZipCrypto option, under
  ``zipkit.unstable``.
"""

__version__ = "0.1"

__all__ = [
    "aio",
    "constants",
    "endian",
    "errors",
    "read",
    "records",
    "unstable",
    "write",
]
