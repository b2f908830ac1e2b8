"""Parser for Valve VPK directory files (``pakNN_dir.vpk``).

Reads only the header and the directory tree to list the virtual file paths
an addon overrides.  File data and preload payloads are skipped, never
decompressed.

Format reference:
  https://developer.valvesoftware.com/wiki/VPK_(file_format)

Tree layout (all strings null-terminated, each level closed by ``""``)::

    extension
        directory            (" " = archive root)
            stem
                entry record (18 bytes) + preload bytes
"""

from __future__ import annotations

import logging
import re
import struct
from dataclasses import dataclass
from pathlib import Path

from deadlock_mod_manager.constants import IGNORED_CONFLICT_FILES

logger = logging.getLogger(__name__)

VPK_SIGNATURE = 0x55AA1234
HEADER_V1_SIZE = 12
HEADER_V2_SIZE = 28
ENTRY_RECORD_SIZE = 18
ENTRY_TERMINATOR = 0xFFFF
ROOT_DIRECTORY = " "

# struct formats (little-endian)
_HEADER_V1_FMT = "<III"
_HEADER_V2_FMT = "<IIIIIII"
_ENTRY_FMT = "<IHHIIH"  # crc, preload_bytes, archive_index, offset, length, terminator


@dataclass(frozen=True, slots=True)
class VpkHeader:
    signature: int
    version: int
    tree_size: int
    header_size: int
    file_data_size: int = 0
    archive_md5_size: int = 0
    other_md5_size: int = 0
    signature_size: int = 0


@dataclass(frozen=True, slots=True)
class VpkEntry:
    extension: str
    directory: str
    stem: str
    crc: int
    preload_bytes: int
    archive_index: int
    offset: int
    length: int

    @property
    def full_path(self) -> str:
        if self.directory:
            return f"{self.directory}/{self.stem}.{self.extension}"
        return f"{self.stem}.{self.extension}"


class TruncatedTreeError(ValueError):
    """The directory tree ended or broke mid-record."""


def parse_vpk_header(data: bytes) -> VpkHeader:
    """Parse the fixed VPK header from the first bytes of a file."""
    if len(data) < HEADER_V1_SIZE:
        raise ValueError(f"Header too short: {len(data)} bytes, need {HEADER_V1_SIZE}")
    signature, version, tree_size = struct.unpack_from(_HEADER_V1_FMT, data, 0)
    if signature != VPK_SIGNATURE:
        raise ValueError(f"Invalid VPK signature: 0x{signature:08x}")
    if version != 2:
        return VpkHeader(
            signature=signature,
            version=version,
            tree_size=tree_size,
            header_size=HEADER_V1_SIZE,
        )
    if len(data) < HEADER_V2_SIZE:
        raise ValueError(f"Header too short: {len(data)} bytes, need {HEADER_V2_SIZE}")
    _, _, _, file_data, archive_md5, other_md5, sig_size = struct.unpack_from(
        _HEADER_V2_FMT, data, 0
    )
    return VpkHeader(
        signature=signature,
        version=version,
        tree_size=tree_size,
        header_size=HEADER_V2_SIZE,
        file_data_size=file_data,
        archive_md5_size=archive_md5,
        other_md5_size=other_md5,
        signature_size=sig_size,
    )


class _TreeCursor:
    """Forward-only reader over the tree bytes with a bounds check on every read."""

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def read_string(self) -> str:
        end = self._data.find(b"\x00", self._pos)
        if end == -1:
            raise TruncatedTreeError(f"Unterminated string at offset {self._pos}")
        raw = self._data[self._pos : end]
        self._pos = end + 1
        return raw.decode("utf-8", errors="replace")

    def read_entry(self) -> tuple[int, int, int, int, int]:
        if self._pos + ENTRY_RECORD_SIZE > len(self._data):
            raise TruncatedTreeError(f"Entry record truncated at offset {self._pos}")
        crc, preload, archive_index, offset, length, terminator = struct.unpack_from(
            _ENTRY_FMT, self._data, self._pos
        )
        if terminator != ENTRY_TERMINATOR:
            raise TruncatedTreeError(
                f"Bad entry terminator 0x{terminator:04x} at offset {self._pos}"
            )
        self._pos += ENTRY_RECORD_SIZE
        self.skip(preload)
        return crc, preload, archive_index, offset, length

    def skip(self, count: int) -> None:
        if self._pos + count > len(self._data):
            raise TruncatedTreeError(f"Preload data truncated at offset {self._pos}")
        self._pos += count


def parse_vpk_tree(tree: bytes) -> list[VpkEntry]:
    """Walk the three string levels of a directory tree.

    Raises:
        TruncatedTreeError: On any out-of-bounds read or bad terminator.
    """
    cursor = _TreeCursor(tree)
    entries: list[VpkEntry] = []

    extension = cursor.read_string()
    while extension:
        directory = cursor.read_string()
        while directory:
            dir_path = "" if directory == ROOT_DIRECTORY else directory
            stem = cursor.read_string()
            while stem:
                crc, preload, archive_index, offset, length = cursor.read_entry()
                entries.append(
                    VpkEntry(
                        extension=extension,
                        directory=dir_path,
                        stem=stem,
                        crc=crc,
                        preload_bytes=preload,
                        archive_index=archive_index,
                        offset=offset,
                        length=length,
                    )
                )
                stem = cursor.read_string()
            directory = cursor.read_string()
        extension = cursor.read_string()

    return entries


def read_vpk_entries(file_path: str | Path) -> list[VpkEntry]:
    """Read header + tree of a VPK file.

    Raises:
        ValueError: If the signature is wrong or the tree is malformed.
        OSError: If the file cannot be read.
    """
    file_path = Path(file_path)
    with file_path.open("rb") as f:
        header = parse_vpk_header(f.read(HEADER_V2_SIZE))
        f.seek(header.header_size)
        tree = f.read(header.tree_size)
    if len(tree) < header.tree_size:
        raise TruncatedTreeError(
            f"Tree truncated: got {len(tree)} bytes, expected {header.tree_size}"
        )
    return parse_vpk_tree(tree)


def parse_vpk_directory(file_path: str | Path) -> list[str] | None:
    """Return every virtual path in a VPK, or ``None`` if it is not a readable VPK.

    Never raises: wrong signatures, truncated trees and unreadable files all
    yield ``None`` rather than a partial list.
    """
    try:
        entries = read_vpk_entries(file_path)
    except (OSError, ValueError) as exc:
        logger.debug("Not a readable VPK %s: %s", file_path, exc)
        return None
    return [e.full_path for e in entries]


# ---------------------------------------------------------------------------
# Content summary
# ---------------------------------------------------------------------------

_HERO_PATTERNS = [
    re.compile(rf"{prefix}/{folder}/([^/]+)/", re.IGNORECASE)
    for folder in ("heroes", "heroes_wip")
    for prefix in ("models", "materials/models", "particles", "sounds")
] + [
    re.compile(r"materials/heroes_wip/([^/]+)/", re.IGNORECASE),
    re.compile(r"scripts/heroes(?:_wip)?/([^/]+)", re.IGNORECASE),
]


@dataclass(frozen=True, slots=True)
class VpkContentSummary:
    heroes: frozenset[str]
    file_count: int
    sample_paths: tuple[str, ...]


def extract_hero_from_path(file_path: str) -> str | None:
    """Return the hero a virtual path belongs to, if it lives under a hero folder."""
    for pattern in _HERO_PATTERNS:
        m = pattern.search(file_path)
        if m:
            return m.group(1).lower()
    return None


def is_ignored_file(file_path: str) -> bool:
    """True for informational files (readme, license, ...) matched on the final segment."""
    name = file_path.rsplit("/", 1)[-1].lower()
    return name in IGNORED_CONFLICT_FILES


def get_vpk_content_summary(file_path: str | Path) -> VpkContentSummary:
    """Summarise which heroes a VPK touches; empty when it cannot be parsed."""
    paths = parse_vpk_directory(file_path)
    if not paths:
        return VpkContentSummary(heroes=frozenset(), file_count=0, sample_paths=())

    heroes = {hero for p in paths if (hero := extract_hero_from_path(p))}
    return VpkContentSummary(
        heroes=frozenset(heroes),
        file_count=len(paths),
        sample_paths=tuple(paths[:5]),
    )
