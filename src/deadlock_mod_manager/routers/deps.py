"""Shared FastAPI dependencies used across routers."""

from pathlib import Path

from fastapi import HTTPException, Request

from deadlock_mod_manager import database
from deadlock_mod_manager.config import settings
from deadlock_mod_manager.services.download_orchestrator import DownloadOrchestrator
from deadlock_mod_manager.services.metadata_store import SqlMetadataStore
from deadlock_mod_manager.utils.paths import game_root_from_install


def get_game_root() -> Path:
    """Resolve the ``citadel`` root of the configured Deadlock install, or 400."""
    if settings.game_path is None:
        raise HTTPException(400, "No Deadlock path configured")
    return game_root_from_install(settings.game_path)


def get_metadata_store() -> SqlMetadataStore:
    return SqlMetadataStore(database.engine)


def get_orchestrator(request: Request) -> DownloadOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(503, "Download queue is not running")
    return orchestrator
