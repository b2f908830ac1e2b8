"""Endpoints for listing and managing installed addons."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from deadlock_mod_manager.errors import ModNotFoundError, NoFreeSlotError, PriorityInUseError
from deadlock_mod_manager.routers.deps import get_game_root, get_metadata_store
from deadlock_mod_manager.schemas.mod import (
    CleanupResult,
    Mod,
    ModContents,
    NextPriorityResult,
    SetPriorityRequest,
)
from deadlock_mod_manager.services.metadata_store import MetadataStore
from deadlock_mod_manager.services.mod_repository import (
    apply_metadata,
    cleanup_addons,
    delete_mod,
    disable_mod,
    enable_mod,
    find_mod,
    scan_mods,
)
from deadlock_mod_manager.services.slots import (
    find_next_available_priority,
    get_used_priorities,
    set_mod_priority,
)
from deadlock_mod_manager.vpk.parser import get_vpk_content_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mods", tags=["mods"])


def _enrich(mod: Mod, store: MetadataStore) -> Mod:
    return apply_metadata([mod], store)[0]


@router.get("/", response_model=list[Mod])
def list_mods(
    root: Path = Depends(get_game_root),
    store: MetadataStore = Depends(get_metadata_store),
) -> list[Mod]:
    return apply_metadata(scan_mods(root), store)


@router.get("/priorities/next", response_model=NextPriorityResult)
def next_priority(start_from: int = 1, root: Path = Depends(get_game_root)) -> NextPriorityResult:
    try:
        priority = find_next_available_priority(root, start_from)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    except NoFreeSlotError as exc:
        raise HTTPException(409, str(exc)) from exc
    return NextPriorityResult(priority=priority, used=sorted(get_used_priorities(root)))


@router.post("/cleanup", response_model=CleanupResult)
def cleanup(root: Path = Depends(get_game_root)) -> CleanupResult:
    return cleanup_addons(root)


@router.get("/{mod_id}/contents", response_model=ModContents)
def mod_contents(mod_id: str, root: Path = Depends(get_game_root)) -> ModContents:
    try:
        mod = find_mod(root, mod_id)
    except ModNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    summary = get_vpk_content_summary(mod.path)
    return ModContents(
        mod_id=mod.id,
        file_count=summary.file_count,
        heroes=sorted(summary.heroes),
        sample_paths=list(summary.sample_paths),
    )


@router.post("/{mod_id}/enable", response_model=Mod)
def enable(
    mod_id: str,
    root: Path = Depends(get_game_root),
    store: MetadataStore = Depends(get_metadata_store),
) -> Mod:
    try:
        return _enrich(enable_mod(root, mod_id), store)
    except ModNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    except PriorityInUseError as exc:
        raise HTTPException(409, str(exc)) from exc


@router.post("/{mod_id}/disable", response_model=Mod)
def disable(
    mod_id: str,
    root: Path = Depends(get_game_root),
    store: MetadataStore = Depends(get_metadata_store),
) -> Mod:
    try:
        return _enrich(disable_mod(root, mod_id), store)
    except ModNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    except PriorityInUseError as exc:
        raise HTTPException(409, str(exc)) from exc


@router.put("/{mod_id}/priority", response_model=Mod)
def set_priority(
    mod_id: str,
    data: SetPriorityRequest,
    root: Path = Depends(get_game_root),
    store: MetadataStore = Depends(get_metadata_store),
) -> Mod:
    try:
        mod = set_mod_priority(root, mod_id, data.priority, store)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    except ModNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    except PriorityInUseError as exc:
        raise HTTPException(409, str(exc)) from exc
    return _enrich(mod, store)


@router.delete("/{mod_id}")
def delete(
    mod_id: str,
    root: Path = Depends(get_game_root),
    store: MetadataStore = Depends(get_metadata_store),
) -> dict[str, list[str]]:
    try:
        deleted = delete_mod(root, mod_id, store)
    except ModNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    return {"deleted": deleted}
