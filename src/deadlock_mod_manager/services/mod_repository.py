"""Filesystem-backed view of installed addons.

The two addon directories are the source of truth: a mod exists while its
archive exists, is enabled while it sits in ``addons/``, and is disabled
while it sits in ``addons/.disabled/``.  Enable/disable moves the file and
never renames it, so the mod keeps both its id and its reserved slot.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from pathlib import Path

from deadlock_mod_manager.constants import CONTAINER_EXTENSIONS
from deadlock_mod_manager.errors import ModNotFoundError, PriorityInUseError
from deadlock_mod_manager.models.metadata import ModMetadata
from deadlock_mod_manager.schemas.mod import CleanupResult, Mod
from deadlock_mod_manager.services.filenames import (
    archive_base_name,
    display_name,
    generate_mod_id,
    is_vpk_file,
    priority_or_default,
)
from deadlock_mod_manager.services.metadata_store import MetadataStore
from deadlock_mod_manager.utils.paths import addons_dir, disabled_dir, ensure_mod_dirs

logger = logging.getLogger(__name__)

_PRESET_INFIX = ".mina_preset"
_TEXTURE_INFIX = ".mina_texture"


def _mod_from_file(path: Path, *, enabled: bool) -> Mod:
    stat = path.stat()
    return Mod(
        id=generate_mod_id(path.name),
        name=display_name(path.name),
        file_name=path.name,
        path=str(path),
        enabled=enabled,
        priority=priority_or_default(path.name),
        size=stat.st_size,
        installed_at=datetime.fromtimestamp(stat.st_mtime, UTC).isoformat(),
    )


def _scan_folder(folder: Path, *, enabled: bool) -> list[Mod]:
    if not folder.is_dir():
        return []
    mods: list[Mod] = []
    for path in sorted(folder.iterdir()):
        if not is_vpk_file(path.name):
            continue
        try:
            if not path.is_file():
                continue
            mods.append(_mod_from_file(path, enabled=enabled))
        except OSError:
            logger.warning("Skipping unreadable addon %s", path)
    return mods


def scan_mods(root: str | Path) -> list[Mod]:
    """List every archive in the enabled and disabled folders, ordered by priority.

    The sort is stable over a name-sorted listing, so identical filename sets
    always produce identical ids and ordering.
    """
    mods = _scan_folder(addons_dir(root), enabled=True) + _scan_folder(
        disabled_dir(root), enabled=False
    )
    mods.sort(key=lambda m: m.priority)
    return mods


def find_mod(root: str | Path, mod_id: str) -> Mod:
    for mod in scan_mods(root):
        if mod.id == mod_id:
            return mod
    raise ModNotFoundError(mod_id)


def apply_metadata(mods: list[Mod], store: MetadataStore) -> list[Mod]:
    """Overlay catalog-provided names and details onto scanned mods."""
    known = store.load_all()
    enriched: list[Mod] = []
    for mod in mods:
        meta = known.get(mod.file_name)
        enriched.append(mod if meta is None else _merge(mod, meta))
    return enriched


def _merge(mod: Mod, meta: ModMetadata) -> Mod:
    return mod.model_copy(
        update={
            "name": meta.mod_name or mod.name,
            "thumbnail_url": meta.thumbnail_url,
            "gamebanana_id": meta.gamebanana_id,
            "gamebanana_file_id": meta.gamebanana_file_id,
            "category_id": meta.category_id,
            "category_name": meta.category_name,
            "source_section": meta.source_section,
            "nsfw": meta.nsfw,
        }
    )


def _move(mod: Mod, dest_dir: Path, *, enabled: bool) -> Mod:
    dest = dest_dir / mod.file_name
    if dest.exists():
        raise PriorityInUseError(f"{mod.file_name} already exists in {dest_dir}")
    Path(mod.path).rename(dest)
    logger.info("Moved %s -> %s", mod.file_name, dest_dir)
    return mod.model_copy(update={"enabled": enabled, "path": str(dest)})


def enable_mod(root: str | Path, mod_id: str) -> Mod:
    mod = find_mod(root, mod_id)
    if mod.enabled:
        return mod
    enabled_dir, _ = ensure_mod_dirs(root)
    return _move(mod, enabled_dir, enabled=True)


def disable_mod(root: str | Path, mod_id: str) -> Mod:
    mod = find_mod(root, mod_id)
    if not mod.enabled:
        return mod
    _, parked = ensure_mod_dirs(root)
    return _move(mod, parked, enabled=False)


def delete_mod(root: str | Path, mod_id: str, store: MetadataStore | None = None) -> list[str]:
    """Delete an archive plus its numbered parts (``<base>_000.vpk`` ...).

    Returns the deleted filenames.
    """
    mod = find_mod(root, mod_id)
    path = Path(mod.path)
    path.unlink()
    deleted = [mod.file_name]

    parts_re = re.compile(rf"^{re.escape(archive_base_name(mod.file_name))}_\d+\.vpk$")
    for sibling in path.parent.iterdir():
        if sibling.is_file() and parts_re.match(sibling.name):
            try:
                sibling.unlink()
                deleted.append(sibling.name)
            except OSError:
                logger.warning("Could not remove archive part %s", sibling)

    if store is not None:
        store.remove(mod.file_name)
    logger.info("Deleted mod %s (%d file(s))", mod.file_name, len(deleted))
    return deleted


def cleanup_addons(root: str | Path) -> CleanupResult:
    """Remove leftover container downloads and normalise variant infixes."""
    result = CleanupResult()
    for folder in (addons_dir(root), disabled_dir(root)):
        if not folder.is_dir():
            continue
        for path in sorted(folder.iterdir()):
            if not path.is_file():
                continue
            name = path.name
            if path.suffix.lower() in CONTAINER_EXTENSIONS:
                try:
                    path.unlink()
                    result.removed_archives += 1
                except OSError:
                    logger.warning("Could not remove leftover archive %s", path)
                continue

            if _PRESET_INFIX in name:
                if _rename_infix(path, _PRESET_INFIX, "_mina_preset"):
                    result.renamed_presets += 1
                else:
                    result.skipped_presets += 1
            elif _TEXTURE_INFIX in name:
                if _rename_infix(path, _TEXTURE_INFIX, "_mina_texture"):
                    result.renamed_textures += 1
                else:
                    result.skipped_textures += 1

    logger.info("Addon cleanup: %s", result.model_dump())
    return result


def _rename_infix(path: Path, old: str, new: str) -> bool:
    target = path.with_name(path.name.replace(old, new))
    if target.exists():
        return False
    try:
        path.rename(target)
    except OSError:
        logger.warning("Could not rename %s", path)
        return False
    return True
