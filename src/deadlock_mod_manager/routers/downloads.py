"""Endpoints for the serialized download queue."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from deadlock_mod_manager.routers.deps import get_game_root, get_orchestrator
from deadlock_mod_manager.schemas.download import DownloadTask, EnqueueResult, QueueSnapshot
from deadlock_mod_manager.services.download_orchestrator import DownloadOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/downloads", tags=["downloads"])


@router.post("/", response_model=EnqueueResult, status_code=202)
async def enqueue_download(
    task: DownloadTask,
    root: Path = Depends(get_game_root),
    orchestrator: DownloadOrchestrator = Depends(get_orchestrator),
) -> EnqueueResult:
    """Queue a download; progress and completion are reported as events."""
    handle = orchestrator.enqueue(root, task)
    snapshot = orchestrator.snapshot()
    position = next(
        (i for i, entry in enumerate(snapshot.pending) if entry.task_id == handle.task_id),
        -1,
    )
    return EnqueueResult(task_id=handle.task_id, position=position + 1)


@router.get("/queue", response_model=QueueSnapshot)
async def queue(orchestrator: DownloadOrchestrator = Depends(get_orchestrator)) -> QueueSnapshot:
    return orchestrator.snapshot()


@router.delete("/{task_id}", status_code=204)
async def cancel_download(
    task_id: int,
    orchestrator: DownloadOrchestrator = Depends(get_orchestrator),
) -> None:
    if not orchestrator.cancel(task_id):
        raise HTTPException(409, f"Download {task_id} is running or unknown")
