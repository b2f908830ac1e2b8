"""Endpoint for slot and file conflicts between enabled addons."""

from pathlib import Path

from fastapi import APIRouter, Depends

from deadlock_mod_manager.routers.deps import get_game_root, get_metadata_store
from deadlock_mod_manager.schemas.conflict import Conflict
from deadlock_mod_manager.services.conflicts import detect_conflicts
from deadlock_mod_manager.services.metadata_store import MetadataStore

router = APIRouter(prefix="/conflicts", tags=["conflicts"])


@router.get("/", response_model=list[Conflict])
def list_conflicts(
    root: Path = Depends(get_game_root),
    store: MetadataStore = Depends(get_metadata_store),
) -> list[Conflict]:
    return detect_conflicts(root, store)
