from typing import Any, Callable, List, Optional, Sequence
import asyncio
import logging

from ..adapters.factory import AdapterFactory
from ..models import CompletedFileRecord, Destination, FileItem, Notification, UploadLogEntry
from ..protocols import IRecordStore
from ..utils.events import EventEmitter
from .controller import PauseController
from .coordinator import BatchCoordinator
from .models import BatchResult, BatchState, RunState
from .progress import ProgressAggregator
from .records import CompletionRecordEmitter
from .task import TaskView
logger = logging.getLogger(__name__)


class BatchRun:
    """
    Process object for one batch with event-based progress tracking.

    A BatchRun owns its task set, its pause controller and its completed
    records. It is single-use: once started it cannot be started again.

    Usage:
        run = await orchestrator.start_batch(files, ["builtin", "acc-1"])

        run.on_task_progress(lambda view: print(f"{view.display_name}: {view.progress}%"))
        run.on_file_complete(lambda entry: print(f"Done: {entry.file_name}"))
        run.on_notify(lambda note: print(note.message))

        await run.pause()
        await run.resume()

        result = await run.wait()
    """

    def __init__(
        self,
        files: Sequence[FileItem],
        destinations: Sequence[Destination],
        adapters: AdapterFactory,
        store: Optional[IRecordStore] = None,
        on_done: Optional[Callable[["BatchRun"], Any]] = None,
    ):
        self._state = BatchState(files=list(files), destinations=list(destinations))
        self._controller = PauseController(self._state)
        self._progress = ProgressAggregator(self._state, self._controller)
        self._events = EventEmitter()
        self._coordinator = BatchCoordinator(
            self._state,
            self._controller,
            adapters,
            CompletionRecordEmitter(self._state, store),
            self._events,
        )
        self._on_done = on_done
        self._run_state = RunState.PENDING
        self._task: Optional[asyncio.Task] = None
        self._result: Optional[BatchResult] = None
        self._error: Optional[Exception] = None

    # Event subscription methods
    def on_start(self, callback: Callable[[], None]):
        """Called when the run starts."""
        self._events.on("start", callback)

    def on_file_start(self, callback: Callable[[FileItem, List[TaskView]], None]):
        """Called when a file's cohort starts. Receives FileItem and initial task views."""
        self._events.on("file_start", callback)

    def on_task_progress(self, callback: Callable[[TaskView], None]):
        """Called when a task's progress increases. Receives TaskView."""
        self._events.on("task_progress", callback)

    def on_task_complete(self, callback: Callable[[TaskView], None]):
        """Called when a task succeeds. Receives TaskView."""
        self._events.on("task_complete", callback)

    def on_task_fail(self, callback: Callable[[TaskView], None]):
        """Called when a task fails. Receives TaskView."""
        self._events.on("task_fail", callback)

    def on_file_complete(self, callback: Callable[[UploadLogEntry], None]):
        """Called when a file's cohort settles. Receives UploadLogEntry."""
        self._events.on("file_complete", callback)

    def on_notify(self, callback: Callable[[Notification], None]):
        """Called with toast-style notifications. Receives Notification."""
        self._events.on("notify", callback)

    def on_pause(self, callback: Callable[[int], None]):
        """Called on pause. Receives the number of transfers cancelled."""
        self._events.on("pause", callback)

    def on_resume(self, callback: Callable[[], None]):
        """Called on resume."""
        self._events.on("resume", callback)

    def on_finish(self, callback: Callable[[BatchResult], None]):
        """Called when the run ends. Receives BatchResult."""
        self._events.on("finish", callback)

    def on_error(self, callback: Callable[[Exception], None]):
        """Called when a critical error occurs. Receives Exception."""
        self._events.on("error", callback)

    # Control methods
    async def start(self):
        """Start the run (non-blocking)."""
        if self._run_state != RunState.PENDING:
            raise RuntimeError(f"BatchRun is single-use; cannot start in state: {self._run_state}")

        self._run_state = RunState.RUNNING
        self._progress.set_running(True)
        self._task = asyncio.create_task(self._run())
        await self._events.emit("start")

    async def pause(self) -> int:
        """Cancel in-flight transfers and hold before the next file."""
        if self._run_state != RunState.RUNNING:
            return 0
        cancelled = self._controller.pause()
        self._run_state = RunState.PAUSED
        await self._events.emit("pause", cancelled)
        await self._events.emit("notify", Notification("info", "Upload paused"))
        return cancelled

    async def resume(self) -> bool:
        """Continue with files not yet attempted."""
        if self._run_state != RunState.PAUSED:
            return False
        self._controller.resume()
        self._run_state = RunState.RUNNING
        await self._events.emit("resume")
        await self._events.emit("notify", Notification("info", "Upload resumed"))
        return True

    async def toggle_pause(self) -> bool:
        """Pause if running, resume if paused. Returns True if now paused."""
        if self._run_state == RunState.PAUSED:
            await self.resume()
        else:
            await self.pause()
        return self._run_state == RunState.PAUSED

    async def stop(self) -> Optional[BatchResult]:
        """Tear the run down: cancel in-flight transfers, process no further files."""
        if self._run_state == RunState.PENDING:
            self._run_state = RunState.STOPPED
            return None
        self._controller.stop()
        if self._task:
            await asyncio.gather(self._task, return_exceptions=True)
        return self._result

    async def wait(self) -> BatchResult:
        """Wait for the run to finish and return its result."""
        if self._run_state == RunState.PENDING:
            await self.start()

        if self._task:
            await self._task

        if self._result is None:
            self._result = BatchResult(
                total_files=len(self._state.files),
                processed_files=self._state.processed_files,
                entries=list(self._state.entries),
                completed=list(self._state.completed),
                stopped=True,
            )
        return self._result

    # State properties
    @property
    def state(self) -> RunState:
        return self._run_state

    @property
    def progress(self) -> ProgressAggregator:
        return self._progress

    @property
    def result(self) -> Optional[BatchResult]:
        return self._result

    @property
    def error(self) -> Optional[Exception]:
        return self._error

    @property
    def destinations(self) -> List[Destination]:
        return list(self._state.destinations)

    @property
    def completed_records(self) -> List[CompletedFileRecord]:
        return list(self._state.completed)

    @property
    def entries(self) -> List[UploadLogEntry]:
        return list(self._state.entries)

    @property
    def is_running(self) -> bool:
        return self._run_state in (RunState.RUNNING, RunState.PAUSED)

    @property
    def is_paused(self) -> bool:
        return self._run_state == RunState.PAUSED

    @property
    def can_download_archive(self) -> bool:
        return not self.is_running and len(self._state.completed) > 0

    # Internal methods
    async def _run(self):
        try:
            self._result = await self._coordinator.run()
            self._run_state = RunState.STOPPED if self._result.stopped else RunState.COMPLETED
            await self._events.emit("finish", self._result)
        except asyncio.CancelledError:
            self._run_state = RunState.STOPPED
            raise
        except Exception as e:
            self._run_state = RunState.FAILED
            self._error = e
            logger.error(f"Batch run failed: {e}", exc_info=True)
            await self._events.emit("error", e)
        finally:
            self._progress.set_running(False)
            if self._on_done is not None:
                self._on_done(self)
