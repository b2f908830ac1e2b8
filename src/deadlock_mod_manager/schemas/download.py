from collections.abc import Callable
from enum import StrEnum

from pydantic import BaseModel


class DownloadStatus(StrEnum):
    queued = "queued"
    downloading = "downloading"
    extracting = "extracting"
    assigning = "assigning"
    saving_metadata = "saving_metadata"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


class DownloadEventKind(StrEnum):
    queued = "download-queued"
    progress = "download-progress"
    extracting = "download-extracting"
    complete = "download-complete"
    failed = "download-failed"


class DownloadTask(BaseModel):
    mod_id: int
    file_id: int
    file_name: str
    section: str = "Mod"
    category_id: int | None = None


class DownloadEvent(BaseModel):
    kind: DownloadEventKind
    task_id: int
    mod_id: int
    file_id: int
    downloaded: int = 0
    total: int = 0
    files: list[str] = []
    error: str = ""


class InstallOutcome(BaseModel):
    task_id: int
    task: DownloadTask
    installed_files: list[str]
    removed_files: list[str] = []


class QueueEntry(BaseModel):
    task_id: int
    task: DownloadTask
    status: DownloadStatus


class QueueSnapshot(BaseModel):
    current: QueueEntry | None
    pending: list[QueueEntry]


class EnqueueResult(BaseModel):
    task_id: int
    position: int


EventCallback = Callable[[DownloadEvent], None]


def noop_event(_event: DownloadEvent) -> None:
    pass
