"""Priority-slot allocation across the enabled and disabled addon folders.

Deadlock loads ``pakNN_dir.vpk`` files by their two-digit slot, and two
archives cannot share a filename inside one folder.  A disabled archive
still reserves its slot: otherwise a fresh download could take the number
and silently shadow the disabled mod once it is re-enabled.

Every read-modify-rename sequence here runs under :data:`slot_lock`, which
is also what the download pipeline holds while it places new archives.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterable
from pathlib import Path

from deadlock_mod_manager.constants import MAX_PRIORITY, MIN_PRIORITY
from deadlock_mod_manager.errors import NoFreeSlotError, PriorityInUseError
from deadlock_mod_manager.schemas.mod import Mod
from deadlock_mod_manager.services.filenames import (
    archive_base_name,
    generate_mod_id,
    parse_priority,
    with_priority,
)
from deadlock_mod_manager.services.metadata_store import MetadataStore
from deadlock_mod_manager.services.mod_repository import find_mod
from deadlock_mod_manager.utils.paths import addons_dir, disabled_dir

logger = logging.getLogger(__name__)

slot_lock = threading.RLock()


def _listed_names(root: str | Path) -> list[str]:
    names: list[str] = []
    for folder in (addons_dir(root), disabled_dir(root)):
        if folder.is_dir():
            names.extend(p.name for p in folder.iterdir() if p.is_file())
    return names


def _archive_parts(path: Path) -> list[Path]:
    parts_re = re.compile(rf"^{re.escape(archive_base_name(path.name))}_\d+\.vpk$")
    return sorted(p for p in path.parent.iterdir() if p.is_file() and parts_re.match(p.name))


def get_used_priorities(root: str | Path, *, exclude: Iterable[str] = ()) -> set[int]:
    """Slots claimed by a ``pakNN`` prefix in either folder.

    Filenames in *exclude* are ignored (used when a mod is moving itself).
    """
    skip = set(exclude)
    used: set[int] = set()
    for name in _listed_names(root):
        if name in skip:
            continue
        priority = parse_priority(name)
        if priority is not None:
            used.add(priority)
    return used


def first_free_priority(used: set[int], start_from: int = MIN_PRIORITY) -> int:
    """Lowest slot >= *start_from* not in *used*.

    Raises:
        NoFreeSlotError: When every slot up to 99 is taken.  Never wraps.
    """
    if not MIN_PRIORITY <= start_from <= MAX_PRIORITY:
        raise ValueError(f"start_from must be within {MIN_PRIORITY}-{MAX_PRIORITY}")
    for priority in range(start_from, MAX_PRIORITY + 1):
        if priority not in used:
            return priority
    raise NoFreeSlotError(
        f"No available priority slots (all {start_from}-{MAX_PRIORITY} are used)"
    )


def find_next_available_priority(root: str | Path, start_from: int = MIN_PRIORITY) -> int:
    """Next free slot over both folders.  Read-only: repeated calls agree."""
    return first_free_priority(get_used_priorities(root), start_from)


def assign_slot(file_name: str, used: set[int]) -> tuple[str, int]:
    """Pick the filename an incoming archive should be installed under.

    The archive keeps its declared slot when that slot is free; otherwise (or
    when it declares none) it moves to the lowest free slot.  The chosen slot
    is added to *used* so a batch never hands out the same number twice.
    """
    declared = parse_priority(file_name)
    if declared is not None and MIN_PRIORITY <= declared <= MAX_PRIORITY and declared not in used:
        used.add(declared)
        return file_name, declared
    priority = first_free_priority(used)
    used.add(priority)
    return with_priority(file_name, priority), priority


def set_mod_priority(
    root: str | Path,
    mod_id: str,
    new_priority: int,
    store: MetadataStore | None = None,
) -> Mod:
    """Rename a mod so it loads at *new_priority*.

    Only the ``pakNN_`` prefix changes; numbered parts (``<base>_000.vpk``)
    are renamed along with the archive.  Because the id derives from the
    filename, the returned mod carries a new id.  When *store* is given the
    mod's metadata follows it to the new filename.

    Raises:
        ValueError: If *new_priority* is outside 1-99.
        ModNotFoundError: If *mod_id* is unknown.
        PriorityInUseError: If another archive holds the slot or the target
            name; the filesystem is left untouched.
    """
    if not MIN_PRIORITY <= new_priority <= MAX_PRIORITY:
        raise ValueError(f"Priority must be within {MIN_PRIORITY}-{MAX_PRIORITY}")

    with slot_lock:
        mod = find_mod(root, mod_id)
        source = Path(mod.path)
        new_name = with_priority(mod.file_name, new_priority)
        dest = source.with_name(new_name)

        if dest == source:
            return mod

        renames = [(source, dest)] + [
            (part, part.with_name(with_priority(part.name, new_priority)))
            for part in _archive_parts(source)
        ]
        if (
            any(target.exists() for _, target in renames)
            or new_priority in get_used_priorities(root)
        ):
            raise PriorityInUseError(f"Priority {new_priority} is already in use")

        for old, new in renames:
            old.rename(new)
        logger.info("Priority change: %s -> %s", mod.file_name, new_name)
        if store is not None:
            store.rename(mod.file_name, new_name)

    return mod.model_copy(
        update={
            "id": generate_mod_id(new_name),
            "file_name": new_name,
            "path": str(dest),
            "priority": new_priority,
        }
    )
