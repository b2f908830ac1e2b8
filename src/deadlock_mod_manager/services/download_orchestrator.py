"""Serialized download-and-install pipeline.

One :class:`DownloadOrchestrator` owns a single queue and a single worker,
so at most one task runs download -> extract -> slot assignment -> metadata
end-to-end at any time.  That serialization is what keeps two near
simultaneous downloads from both picking the same "next free" slot.

Per task::

    queued -> downloading -> [extracting] -> assigning -> saving_metadata -> completed

and any step may end in ``failed``.  New archives always land in
``addons/.disabled`` so a download never activates itself.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import shutil
import tempfile
from collections import deque
from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from deadlock_mod_manager.archive.handler import extract_vpks, is_container
from deadlock_mod_manager.config import settings
from deadlock_mod_manager.errors import (
    DownloadCancelledError,
    DownloadError,
    ModNotFoundError,
    PriorityInUseError,
)
from deadlock_mod_manager.schemas.catalog import RemoteModDetails
from deadlock_mod_manager.schemas.download import (
    DownloadEvent,
    DownloadEventKind,
    DownloadStatus,
    DownloadTask,
    EventCallback,
    InstallOutcome,
    QueueEntry,
    QueueSnapshot,
    noop_event,
)
from deadlock_mod_manager.services.catalog import CatalogClient
from deadlock_mod_manager.services.downloader import stream_download
from deadlock_mod_manager.services.filenames import is_vpk_file
from deadlock_mod_manager.services.metadata_store import MetadataStore
from deadlock_mod_manager.services.slots import assign_slot, get_used_priorities, slot_lock
from deadlock_mod_manager.services.variants import (
    VariantSelection,
    is_multi_variant_download,
    select_single_file,
    select_variant_files,
)
from deadlock_mod_manager.utils.paths import addons_dir, disabled_dir, ensure_mod_dirs

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _Job:
    task_id: int
    root: Path
    task: DownloadTask
    future: asyncio.Future[InstallOutcome]
    status: DownloadStatus = DownloadStatus.queued

    def entry(self) -> QueueEntry:
        return QueueEntry(task_id=self.task_id, task=self.task, status=self.status)


@dataclass(frozen=True)
class DownloadHandle:
    """Returned by :meth:`DownloadOrchestrator.enqueue`; awaitable for the outcome."""

    task_id: int
    future: asyncio.Future[InstallOutcome] = field(repr=False)

    def __await__(self) -> Generator[Any, None, InstallOutcome]:
        return self.future.__await__()


@dataclass(slots=True)
class _Placement:
    installed: list[tuple[str, str]]  # (final filename, name inside the container)
    removed: list[str]


def _consume_exception(future: asyncio.Future[InstallOutcome]) -> None:
    # Fire-and-forget callers never await the future; mark errors as retrieved.
    if not future.cancelled():
        future.exception()


class DownloadOrchestrator:
    def __init__(
        self,
        catalog: CatalogClient,
        store: MetadataStore,
        *,
        on_event: EventCallback = noop_event,
        http_client: httpx.AsyncClient | None = None,
        download_timeout: float | None = None,
        extract_timeout: float | None = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._on_event = on_event
        self._http = http_client
        self._download_timeout = download_timeout or settings.download_timeout
        self._extract_timeout = extract_timeout or settings.extract_timeout

        self._ids = itertools.count(1)
        self._pending: deque[_Job] = deque()
        self._current: _Job | None = None
        self._worker: asyncio.Task[None] | None = None
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()

    # ------------------------------------------------------------------
    # Queue API
    # ------------------------------------------------------------------

    def enqueue(self, root: str | Path, task: DownloadTask) -> DownloadHandle:
        """Queue *task*; it runs after everything queued before it."""
        loop = asyncio.get_running_loop()
        job = _Job(
            task_id=next(self._ids),
            root=Path(root),
            task=task,
            future=loop.create_future(),
        )
        job.future.add_done_callback(_consume_exception)
        self._pending.append(job)
        self._idle.clear()
        self._emit(DownloadEventKind.queued, job)
        logger.info(
            "Queued download %d (mod %d, file %d), %d waiting",
            job.task_id,
            task.mod_id,
            task.file_id,
            len(self._pending),
        )

        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="download-orchestrator")
        self._wakeup.set()
        return DownloadHandle(task_id=job.task_id, future=job.future)

    async def drain(self) -> None:
        """Wait until every queued task has finished."""
        await self._idle.wait()

    def cancel(self, task_id: int) -> bool:
        """Drop a task that has not started yet.  The running task cannot be cancelled."""
        for job in self._pending:
            if job.task_id == task_id:
                self._pending.remove(job)
                job.status = DownloadStatus.cancelled
                job.future.set_exception(DownloadCancelledError(f"Download {task_id} cancelled"))
                logger.info("Cancelled queued download %d", task_id)
                if not self._pending and self._current is None:
                    self._idle.set()
                return True
        return False

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(
            current=self._current.entry() if self._current else None,
            pending=[job.entry() for job in self._pending],
        )

    async def shutdown(self) -> None:
        """Stop the worker; tasks still waiting are cancelled."""
        while self._pending:
            self.cancel(self._pending[0].task_id)
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        self._idle.set()

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            while not self._pending:
                self._idle.set()
                self._wakeup.clear()
                await self._wakeup.wait()

            job = self._pending.popleft()
            self._current = job
            try:
                outcome = await self._process(job)
            except asyncio.CancelledError:
                job.status = DownloadStatus.cancelled
                if not job.future.done():
                    job.future.set_exception(
                        DownloadCancelledError(f"Download {job.task_id} interrupted by shutdown")
                    )
                raise
            except Exception as exc:
                job.status = DownloadStatus.failed
                logger.exception("Download %d failed", job.task_id)
                self._emit(DownloadEventKind.failed, job, error=str(exc)[:500])
                if not job.future.done():
                    job.future.set_exception(exc)
            else:
                job.status = DownloadStatus.completed
                self._emit(DownloadEventKind.complete, job, files=outcome.installed_files)
                if not job.future.done():
                    job.future.set_result(outcome)
            finally:
                self._current = None

    async def _process(self, job: _Job) -> InstallOutcome:
        task = job.task
        _, parked = await asyncio.to_thread(ensure_mod_dirs, job.root)

        try:
            details = await self._catalog.fetch_mod_details(task.mod_id, task.section)
        except httpx.HTTPError as exc:
            raise DownloadError(f"Could not fetch details for mod {task.mod_id}: {exc}") from exc
        remote = details.find_file(task.file_id)
        if remote is None:
            raise ModNotFoundError(f"file {task.file_id} of mod {task.mod_id}")

        # Only the basename is trusted; catalog names may carry path segments.
        file_name = Path(task.file_name).name or Path(remote.file_name).name
        if not file_name:
            raise DownloadError(f"No file name for file {task.file_id}")

        job.status = DownloadStatus.downloading
        partial = parked / f"{file_name}.part"

        def _progress(downloaded: int, total: int) -> None:
            self._emit(DownloadEventKind.progress, job, downloaded=downloaded, total=total)

        await stream_download(
            remote.download_url,
            partial,
            _progress,
            timeout=self._download_timeout,
            client=self._http,
        )

        try:
            with tempfile.TemporaryDirectory(prefix="dmm-install-") as tmp:
                staging = Path(tmp)
                candidates = await self._stage(job, partial, file_name, staging)
                multi = is_multi_variant_download(details.name, file_name)
                names = [p.name for p in candidates]
                selection = select_variant_files(names) if multi else select_single_file(names)
                if selection.discard:
                    logger.info(
                        "Download %d: keeping %s, discarding %d other archive(s)",
                        job.task_id,
                        selection.keep,
                        len(selection.discard),
                    )

                job.status = DownloadStatus.assigning
                placement = await asyncio.to_thread(
                    self._place, job.root, staging, selection, replace_presets=multi
                )
        finally:
            partial.unlink(missing_ok=True)

        job.status = DownloadStatus.saving_metadata
        await asyncio.to_thread(self._save_metadata, details, task, placement, selection, multi)

        return InstallOutcome(
            task_id=job.task_id,
            task=task,
            installed_files=[final for final, _ in placement.installed],
            removed_files=placement.removed,
        )

    async def _stage(
        self, job: _Job, partial: Path, file_name: str, staging: Path
    ) -> list[Path]:
        """Put the candidate ``.vpk`` files for *job* into *staging*."""
        if is_container(file_name):
            job.status = DownloadStatus.extracting
            self._emit(DownloadEventKind.extracting, job)
            # The handler is picked by suffix, so the container needs its real name back.
            container = staging / "download" / file_name
            container.parent.mkdir()
            await asyncio.to_thread(shutil.move, str(partial), container)
            return await asyncio.to_thread(
                extract_vpks, container, staging, timeout=self._extract_timeout
            )
        if is_vpk_file(file_name):
            target = staging / file_name
            await asyncio.to_thread(shutil.move, str(partial), target)
            return [target]
        raise DownloadError(f"Unsupported download type: {file_name}")

    def _place(
        self,
        root: Path,
        staging: Path,
        selection: VariantSelection,
        *,
        replace_presets: bool,
    ) -> _Placement:
        """Move the kept archives into ``.disabled`` under collision-free names.

        Every final name is chosen and checked before any file is touched, so
        a slot or name clash fails the task with the tree unchanged.
        """
        with slot_lock:
            _, parked = ensure_mod_dirs(root)
            presets = self._store.variant_presets() if replace_presets else []
            used = get_used_priorities(root, exclude=presets)

            planned: list[tuple[str, str, int]] = []
            for name in selection.keep:
                final, priority = assign_slot(name, used)
                if final not in presets and (
                    (parked / final).exists() or (addons_dir(root) / final).exists()
                ):
                    raise PriorityInUseError(f"{final} already exists")
                planned.append((final, name, priority))

            removed = self._remove_presets(root, presets)
            installed: list[tuple[str, str]] = []
            try:
                for final, name, priority in planned:
                    shutil.move(str(staging / name), parked / final)
                    installed.append((final, name))
                    if final != name:
                        logger.info("Installed %s as %s (slot %d)", name, final, priority)
                    else:
                        logger.info("Installed %s (slot %d)", final, priority)
            except OSError:
                for final, name in installed:
                    shutil.move(str(parked / final), staging / name)
                raise
        return _Placement(installed=installed, removed=removed)

    def _remove_presets(self, root: Path, presets: list[str]) -> list[str]:
        removed: list[str] = []
        for file_name in presets:
            for folder in (addons_dir(root), disabled_dir(root)):
                path = folder / file_name
                if path.is_file():
                    path.unlink()
                    removed.append(file_name)
            self._store.remove(file_name)
        if removed:
            logger.info("Removed previous variant preset(s): %s", removed)
        return removed

    def _save_metadata(
        self,
        details: RemoteModDetails,
        task: DownloadTask,
        placement: _Placement,
        selection: VariantSelection,
        multi: bool,
    ) -> None:
        category = details.category
        for final, original in placement.installed:
            self._store.upsert(
                final,
                mod_name=details.name,
                thumbnail_url=details.thumbnail_url,
                gamebanana_id=details.id,
                gamebanana_file_id=task.file_id,
                category_id=(category.id if category and category.id else task.category_id),
                category_name=category.name if category else None,
                source_section=task.section,
                nsfw=details.nsfw,
                is_variant_preset=multi and original == selection.preset,
            )

    def _emit(self, kind: DownloadEventKind, job: _Job, **fields: Any) -> None:
        event = DownloadEvent(
            kind=kind,
            task_id=job.task_id,
            mod_id=job.task.mod_id,
            file_id=job.task.file_id,
            **fields,
        )
        try:
            self._on_event(event)
        except Exception:
            logger.debug("Event listener failed for %s", kind)
