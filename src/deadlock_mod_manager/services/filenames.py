"""Filename conventions for addon archives.

Load order lives in the filename itself (``pak07_cool_skin_dir.vpk`` loads
at slot 7), so this module is the only place that reads or writes that
prefix.  Everything else handles priority as an ``int``.
"""

from __future__ import annotations

import hashlib
import re

from deadlock_mod_manager.constants import (
    DEFAULT_PRIORITY,
    DIR_SUFFIX,
    MAX_PRIORITY,
    MIN_PRIORITY,
    PRIORITY_PREFIX,
    VPK_EXTENSION,
)

_PREFIX_RE = re.compile(r"^pak\d{2}_")
_SEPARATOR_RE = re.compile(r"[_-]")


def is_vpk_file(file_name: str) -> bool:
    """True for ``foo.vpk`` and ``foo_dir.vpk``."""
    return file_name.endswith(VPK_EXTENSION)


def parse_priority(file_name: str) -> int | None:
    """Read the ``pakNN`` slot from a filename, or ``None`` if it has none."""
    if not file_name.startswith(PRIORITY_PREFIX) or not is_vpk_file(file_name):
        return None
    digits = file_name[3:5]
    if len(digits) != 2 or not digits.isdigit():
        return None
    return int(digits)


def priority_or_default(file_name: str) -> int:
    parsed = parse_priority(file_name)
    return DEFAULT_PRIORITY if parsed is None else parsed


def format_prefix(priority: int) -> str:
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise ValueError(f"Priority {priority} outside {MIN_PRIORITY}-{MAX_PRIORITY}")
    return f"{PRIORITY_PREFIX}{priority:02d}_"


def has_priority_prefix(file_name: str) -> bool:
    return _PREFIX_RE.match(file_name) is not None


def with_priority(file_name: str, priority: int) -> str:
    """Return *file_name* carrying slot *priority*.

    Only the ``pakNN_`` prefix is replaced; the rest of the name is kept.  A
    name without a prefix gets one prepended.
    """
    prefix = format_prefix(priority)
    if has_priority_prefix(file_name):
        return _PREFIX_RE.sub(prefix, file_name, count=1)
    return prefix + file_name


def generate_mod_id(file_name: str) -> str:
    """Stable id from the filename (not the path), so moving between folders keeps it."""
    return hashlib.md5(file_name.encode("utf-8")).hexdigest()[:16]


def display_name(file_name: str) -> str:
    """Human-readable name: ``pak05_cool-skin_dir.vpk`` -> ``Cool Skin``."""
    name = file_name
    if name.endswith(DIR_SUFFIX):
        name = name[: -len(DIR_SUFFIX)]
    elif name.endswith(VPK_EXTENSION):
        name = name[: -len(VPK_EXTENSION)]

    if name.startswith(PRIORITY_PREFIX) and len(name) > 5:
        rest = name[5:]
        name = rest[1:] if rest.startswith("_") else rest

    words = _SEPARATOR_RE.sub(" ", name).split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


def archive_base_name(file_name: str) -> str:
    """Base shared by a multi-part archive's files (``pak05_foo_dir.vpk`` -> ``pak05_foo``)."""
    if file_name.endswith(DIR_SUFFIX):
        return file_name[: -len(DIR_SUFFIX)]
    return file_name.removesuffix(VPK_EXTENSION)
