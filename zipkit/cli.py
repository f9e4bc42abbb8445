from __future__ import annotations

import os
import sys
import time
import logging
import argparse
import getpass as _getpass

from datetime import datetime
from pathlib import Path
from typing import List, Optional

from zipkit.aes import AesMode
from zipkit.constants import METHOD_STORED, METHOD_DEFLATED, METHOD_ZSTD, METHOD_AES, EXTRA_AES, FLAG_UTF8
from zipkit.errors import ZipKitError, InvalidPasswordError
from zipkit.read.directory import read_central_directory
from zipkit.read.stream import ZipStreamReader
from zipkit.records import find_extra_field, parse_aes_extra_field
from zipkit.write import FileOptions, ZipWriter


_METHODS = {
    "stored": METHOD_STORED,
    "deflated": METHOD_DEFLATED,
    "zstd": METHOD_ZSTD,
}
_METHOD_NAMES = {v: k for k, v in _METHODS.items()}

_DOS_EPOCH = datetime(1980, 1, 1)


def _mtime(path: str) -> datetime:
    """Modification time clamped to the range MS-DOS timestamps can hold."""
    try:
        when = datetime.fromtimestamp(os.stat(path).st_mtime)
    except (OSError, OverflowError, ValueError):
        return _DOS_EPOCH
    return max(when, _DOS_EPOCH)


def cmd_pack(
    output: str,
    inputs: list[str],
    *,
    method: str = "deflated",
    level: Optional[int] = None,
    large_file: bool = False,
    password: Optional[str] = None,
    quiet: bool = False,
) -> bool:
    """Create a new ZIP archive from filesystem paths.

    Args:
        output: Path of the archive to write.
        inputs: Files or directories to store; directories are walked recursively.
        method: "stored", "deflated" (default) or "zstd".
        level: Compression level passed to the codec.
        large_file: Force zip64 headers on every file entry.
        password: When given, file entries are AES-256 encrypted.
    """
    base_opts = FileOptions().with_compression_method(_METHODS[method]).with_compression_level(level)
    if large_file:
        base_opts = base_opts.with_large_file(True)
    if password:
        base_opts = base_opts.with_aes_encryption(AesMode.AES256, password)

    dirs: list[tuple[str, str]] = []
    files: list[tuple[str, str]] = []
    out_abs = os.path.abspath(output)
    for p in (Path(x) for x in inputs):
        if p.is_dir():
            # "." and ".." carry no usable name; their contents go to the archive root
            base = p.name if p.name not in ("", "..") else ""
            if base:
                dirs.append((base, str(p)))
            for root, dirnames, filenames in os.walk(str(p)):
                dirnames[:] = sorted(d for d in dirnames if not os.path.islink(os.path.join(root, d)))
                for d in dirnames:
                    sub = os.path.join(root, d)
                    dirs.append((os.path.join(base, os.path.relpath(sub, start=str(p))), sub))
                for f in sorted(filenames):
                    full = os.path.join(root, f)
                    if os.path.abspath(full) == out_abs:
                        continue
                    files.append((os.path.join(base, os.path.relpath(full, start=str(p))), full))
        else:
            files.append((p.name, str(p)))

    t0 = time.time()
    total = 0
    with ZipWriter(output) as w:
        for arc, full in dirs:
            opts = FileOptions().with_last_modified_time(_mtime(full))
            opts = opts.with_unix_permissions(os.stat(full).st_mode)
            w.add_directory(arc, opts)
        for arc, full in files:
            with open(full, "rb") as fh:
                data = fh.read()
            opts = base_opts.with_last_modified_time(_mtime(full)).with_unix_permissions(os.stat(full).st_mode)
            w.write_file(arc, data, opts)
            total += len(data)
            if not quiet:
                print(f" adding: {arc} ({len(data)} bytes)")

    dt = max(0.000001, time.time() - t0)
    print(f"Done: {len(files)} files, {len(dirs)} dirs; {total / (1024.0 * 1024.0):.2f} MiB in {dt:.1f}s")
    return True


def cmd_list(archive: str) -> bool:
    """List archive entries from the central directory.

    Args:
        archive: Path to a .zip file.
    """
    with open(archive, "rb") as f:
        headers = read_central_directory(f)
    for h in headers:
        name = h.file_name.decode("utf-8" if h.flags & FLAG_UTF8 else "cp437")
        method = h.method
        tag = ""
        if method == METHOD_AES:
            extra = find_extra_field(h.extra_field, EXTRA_AES)
            if extra is not None:
                _, mode, method = parse_aes_extra_field(extra)
                tag = f"\t{mode.name}"
        kind = "dir" if name.endswith("/") else "file"
        print(f"{kind}\t{h.uncompressed_size}\t{_METHOD_NAMES.get(method, str(method))}\t{name}{tag}")
    return True


def cmd_unpack(archive: str, *, outdir: str = ".", password: Optional[str] = None, quiet: bool = False) -> bool:
    """Extract every entry by streaming through the local headers.

    Args:
        archive: Path to a .zip file.
        outdir: Destination directory (created when missing).
        password: Password for AES-encrypted entries.
    """
    os.makedirs(outdir, exist_ok=True)
    with open(archive, "rb") as f:
        count = ZipStreamReader(f, password=password).extract(outdir)
    if not quiet:
        print(f"Extracted {count} entries to {outdir}")
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(prog="zipkit", description="Minimal ZIP archive tool")
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_pack = sub.add_parser("pack", help="Create an archive")
    ap_pack.add_argument("output", help="Output .zip path")
    ap_pack.add_argument("inputs", nargs="+", help="Input files/directories")
    ap_pack.add_argument("--method", choices=sorted(_METHODS), default="deflated", help="Compression method (default: deflated)")
    ap_pack.add_argument("--level", type=int, help="Compression level")
    ap_pack.add_argument("--large-file", action="store_true", help="Write zip64 headers for every file")
    ap_pack.add_argument("--password", nargs="?", const="", help="Encrypt file entries with AES-256 (prompts when no value is given)")
    ap_pack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")

    ap_unpack = sub.add_parser("unpack", help="Extract an archive")
    ap_unpack.add_argument("archive", help="Archive path")
    ap_unpack.add_argument("--outdir", default=".", help="Output directory")
    ap_unpack.add_argument("--password", nargs="?", const="", help="Archive password (prompts when no value is given)")
    ap_unpack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    args = ap.parse_args(argv)
    if getattr(args, "password", None) == "":
        args.password = _getpass.getpass("Archive password: ")
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.cmd == "pack":
            cmd_pack(
                args.output,
                args.inputs,
                method=args.method,
                level=args.level,
                large_file=args.large_file,
                password=args.password,
                quiet=args.quiet,
            )
        elif args.cmd == "list":
            cmd_list(args.archive)
        elif args.cmd == "unpack":
            cmd_unpack(args.archive, outdir=args.outdir, password=args.password, quiet=args.quiet)
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except InvalidPasswordError as e:
        print(f"Error: {e}. Provide the correct --password.", file=sys.stderr)
        sys.exit(2)
    except (ZipKitError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
