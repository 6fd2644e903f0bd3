"""Completion record emitter - turns a settled cohort into log entry + archive records."""
import logging
from typing import Awaitable, List, Optional, Sequence

from ..errors import LogWriteError
from ..models import (
    UPLOAD_LOGS,
    CompletedFileRecord,
    FileItem,
    Notification,
    TaskStatus,
    UploadLogEntry,
)
from ..protocols import IRecordStore
from .models import BatchState
from .task import TransferTask
logger = logging.getLogger(__name__)


async def best_effort(operation: Awaitable, description: str) -> None:
    """
    Await a side effect whose result is discarded by contract.

    Failures are logged locally as LogWriteError and never propagate.
    """
    try:
        await operation
    except Exception as exc:
        error = LogWriteError(f"{description} failed")
        logger.warning(f"{error} ({type(exc).__name__})")
        logger.debug(f"{description} error: {exc}")


class CompletionRecordEmitter:
    """Produces exactly one UploadLogEntry per processed file."""

    def __init__(self, state: BatchState, store: Optional[IRecordStore] = None):
        self._state = state
        self._store = store

    async def emit(self, file: FileItem, tasks: Sequence[TransferTask], duration_ms: int) -> UploadLogEntry:
        entry = UploadLogEntry(
            file_name=file.name,
            file_size=file.size,
            file_type=file.content_type,
            destinations=tuple(task.destination.id for task in tasks),
            outcomes=tuple(task.outcome() for task in tasks),
            duration_ms=duration_ms,
        )

        for task in tasks:
            if task.status == TaskStatus.SUCCEEDED and task.remote_url:
                self._state.completed.append(
                    CompletedFileRecord(
                        file_name=file.name,
                        remote_url=task.remote_url,
                        destination_id=task.destination.id,
                    )
                )
        self._state.entries.append(entry)

        if self._store is not None:
            # Best-effort: losing the log entry never changes transfer outcomes
            await best_effort(self._store.create(UPLOAD_LOGS, entry.to_record()), "upload log write")

        logger.info(
            f"{file.name}: {len(entry.succeeded)} succeeded, {len(entry.failed)} failed "
            f"({entry.duration_ms} ms)"
        )
        return entry

    @staticmethod
    def notifications(entry: UploadLogEntry) -> List[Notification]:
        """Toast-style summary for one file."""
        notes = []
        ok = len(entry.succeeded)
        failed = len(entry.failed)
        if ok:
            notes.append(Notification("success", f"{entry.file_name} uploaded to {ok} destination(s)"))
        if failed:
            notes.append(Notification("error", f"{entry.file_name} failed on {failed} destination(s)"))
        return notes
