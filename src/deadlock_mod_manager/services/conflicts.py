"""Conflict detection between enabled addons.

Two relations are computed from scratch on every call:

* **priority**: two enabled archives claim the same ``pakNN`` slot.  Cheap,
  derived from filenames alone.
* **file**: two enabled archives contain the same virtual path, so one
  silently overrides the other in game.  Needs the directory tree of every
  archive.

A pair already reported for its slot is not reported again for its files.
Archives that fail to parse are left out of the file check; the scan as a
whole never fails because of one bad archive.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from itertools import combinations
from pathlib import Path

from deadlock_mod_manager.schemas.conflict import Conflict, ConflictKind
from deadlock_mod_manager.schemas.mod import Mod
from deadlock_mod_manager.services.metadata_store import MetadataStore
from deadlock_mod_manager.services.mod_repository import apply_metadata, scan_mods
from deadlock_mod_manager.vpk.parser import is_ignored_file, parse_vpk_directory

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 3


def _priority_conflicts(mods: list[Mod]) -> list[Conflict]:
    by_priority: dict[int, list[Mod]] = defaultdict(list)
    for mod in mods:
        by_priority[mod.priority].append(mod)

    conflicts: list[Conflict] = []
    for priority in sorted(by_priority):
        for a, b in combinations(by_priority[priority], 2):
            conflicts.append(
                Conflict(
                    mod_a=a.id,
                    mod_a_name=a.name,
                    mod_b=b.id,
                    mod_b_name=b.name,
                    kind=ConflictKind.priority,
                    details=f"Both use pak{priority:02d}",
                )
            )
    return conflicts


def _load_manifests(mods: list[Mod]) -> dict[str, set[str]]:
    manifests: dict[str, set[str]] = {}
    for mod in mods:
        paths = parse_vpk_directory(mod.path)
        if not paths:
            logger.info("Skipping %s in file check: failed to parse or empty", mod.file_name)
            continue
        manifests[mod.id] = {p for p in paths if not is_ignored_file(p)}
        logger.debug("%s: %d file(s)", mod.file_name, len(paths))
    return manifests


def _describe_overlap(shared: list[str]) -> str:
    sample = ", ".join(shared[:SAMPLE_SIZE])
    more = "..." if len(shared) > SAMPLE_SIZE else ""
    return f"{len(shared)} shared file(s): {sample}{more}"


def detect_conflicts(root: str | Path, store: MetadataStore | None = None) -> list[Conflict]:
    """Return every priority and file conflict among the enabled mods."""
    mods = [m for m in scan_mods(root) if m.enabled]
    if store is not None:
        mods = apply_metadata(mods, store)
    logger.info("Checking %d enabled mod(s) for conflicts", len(mods))
    if len(mods) < 2:
        return []

    conflicts = _priority_conflicts(mods)
    reported = {frozenset((c.mod_a, c.mod_b)) for c in conflicts}

    manifests = _load_manifests(mods)
    with_files = [m for m in mods if m.id in manifests]
    for a, b in combinations(with_files, 2):
        if frozenset((a.id, b.id)) in reported:
            continue
        shared = sorted(manifests[a.id] & manifests[b.id])
        if not shared:
            continue
        logger.info(
            "File conflict: %s vs %s (%d shared)", a.file_name, b.file_name, len(shared)
        )
        conflicts.append(
            Conflict(
                mod_a=a.id,
                mod_a_name=a.name,
                mod_b=b.id,
                mod_b_name=b.name,
                kind=ConflictKind.file,
                details=_describe_overlap(shared),
            )
        )

    logger.info("Found %d conflict(s)", len(conflicts))
    return conflicts
