"""Batch coordinator - files in sequence, destinations of a file in parallel."""
from typing import Optional
import asyncio
import logging
import time

from ..adapters.factory import AdapterFactory
from ..errors import CancellationError
from ..models import FileItem
from ..utils.events import EventEmitter
from .controller import PauseController
from .models import BatchResult, BatchState
from .records import CompletionRecordEmitter
from .task import TransferTask
logger = logging.getLogger(__name__)


class BatchCoordinator:
    """
    Drives one batch run.

    For each file: wait while paused, create one task per destination, run the
    cohort concurrently and wait for every task to settle before the next
    file. A failed destination never affects its siblings or later files.
    """

    def __init__(
        self,
        state: BatchState,
        controller: PauseController,
        adapters: AdapterFactory,
        emitter: CompletionRecordEmitter,
        events: Optional[EventEmitter] = None,
    ):
        self._state = state
        self._controller = controller
        self._adapters = adapters
        self._emitter = emitter
        self._events = events or EventEmitter()

    async def run(self) -> BatchResult:
        total = len(self._state.files)
        stopped = False
        logger.info(f"Starting batch: {total} file(s) x {len(self._state.destinations)} destination(s)")

        for index, file in enumerate(self._state.files, 1):
            if not await self._controller.wait_until_runnable():
                logger.info(f"Batch stopped before file {index}/{total}")
                stopped = True
                break
            await self._process_file(index, file)

        await self._events.drain()
        result = BatchResult(
            total_files=total,
            processed_files=self._state.processed_files,
            entries=list(self._state.entries),
            completed=list(self._state.completed),
            stopped=stopped,
        )
        logger.info(
            f"Batch complete: {result.processed_files}/{total} file(s), "
            f"{result.succeeded_transfers} transfer(s) ok, {result.failed_transfers} failed"
        )
        return result

    async def _process_file(self, index: int, file: FileItem) -> None:
        total = len(self._state.files)
        cohort = [TransferTask(file, destination) for destination in self._state.destinations]

        self._state.current_file = file
        self._state.file_index = index
        self._state.live_tasks = cohort
        logger.info(f"[{index}/{total}] Uploading {file.name} to {len(cohort)} destination(s)")
        await self._events.emit("file_start", file, [task.view() for task in cohort])

        started = time.monotonic()
        await asyncio.gather(*(self._run_task(task) for task in cohort))
        duration_ms = int((time.monotonic() - started) * 1000)

        # Cohort settled: no task outlives its file
        self._state.live_tasks = []
        self._state.current_file = None
        self._state.processed_files += 1

        entry = await self._emitter.emit(file, cohort, duration_ms)
        await self._events.emit("file_complete", entry)
        for note in self._emitter.notifications(entry):
            await self._events.emit("notify", note)

    async def _run_task(self, task: TransferTask) -> None:
        # A pause landing before the task starts defers it until resume
        if not await self._controller.wait_until_runnable():
            task.fail(CancellationError("batch stopped"))
            await self._events.emit("task_fail", task.view())
            return

        task.start()
        try:
            adapter = self._adapters.for_destination(task.destination)
            result = await adapter.transfer(
                task.file,
                task.destination,
                lambda percent: self._on_progress(task, percent),
                task.token,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            task.fail(exc)
            logger.info(
                f"✗ {task.file.name} -> {task.destination.id}: "
                f"{task.error} [{task.error_kind.value}]"
            )
            await self._events.emit("task_fail", task.view())
            return

        task.succeed(result.remote_url)
        logger.info(f"✓ {task.file.name} -> {task.destination.id}")
        await self._events.emit("task_complete", task.view())

    def _on_progress(self, task: TransferTask, percent: int) -> None:
        if task.report_progress(percent):
            self._events.emit_nowait("task_progress", task.view())
