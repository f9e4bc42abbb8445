from __future__ import annotations

import os


def norm_path(name: str) -> str:
    """Normalize a member name to the forward-slash form stored in ZIP headers.

    Rules:
    - Convert backslashes to slashes
    - Strip leading/trailing slashes (no absolute names in the archive)
    - Remove empty and '.' segments
    - Reject '..' segments and names that normalize to nothing
    """
    parts = [q for q in name.replace("\\", "/").split("/") if q not in ("", ".")]
    if ".." in parts:
        raise ValueError(f"Member name may not contain '..': {name!r}")
    if not parts:
        raise ValueError(f"Empty member name: {name!r}")
    return "/".join(parts)


def dir_name(name: str) -> str:
    """Directory members carry a trailing slash."""
    return norm_path(name) + "/"


def safe_join(root: str, name: str) -> str:
    """Map an archive member name to a path below ``root`` or raise ValueError."""
    rel = norm_path(name)
    if ":" in rel.split("/")[0]:
        raise ValueError(f"Member name may not carry a drive: {name!r}")
    dest = os.path.join(root, *rel.split("/"))
    root_abs = os.path.abspath(root)
    if os.path.commonpath([root_abs, os.path.abspath(dest)]) != root_abs:
        raise ValueError(f"Member name escapes extraction root: {name!r}")
    return dest
