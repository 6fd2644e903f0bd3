"""Transfer task - one (file, destination) pairing and its state machine."""
from dataclasses import dataclass
from typing import Optional
import logging

from ..adapters.base import CancelToken
from ..errors import ErrorKind, classify
from ..models import Destination, DestinationOutcome, FileItem, TaskStatus
logger = logging.getLogger(__name__)


class InvalidTransition(RuntimeError):
    """Raised when a task is driven into a state it cannot reach."""


_ALLOWED = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.FAILED},
    TaskStatus.IN_PROGRESS: {TaskStatus.PAUSED, TaskStatus.SUCCEEDED, TaskStatus.FAILED},
    TaskStatus.PAUSED: {TaskStatus.IN_PROGRESS, TaskStatus.SUCCEEDED, TaskStatus.FAILED},
    TaskStatus.SUCCEEDED: set(),
    TaskStatus.FAILED: set(),
}


@dataclass(frozen=True)
class TaskView:
    """Read-only snapshot of a task for the UI."""
    destination_id: str
    display_name: str
    status: TaskStatus
    progress: int
    error: Optional[str] = None
    remote_url: Optional[str] = None


class TransferTask:
    """
    Pending -> InProgress -> {Succeeded | Failed}, with InProgress <-> Paused
    as an externally driven overlay.

    Progress is non-decreasing while in flight, forced to 100 on success and
    reset to 0 on failure. Succeeded and Failed are terminal.
    """

    def __init__(self, file: FileItem, destination: Destination):
        self.file = file
        self.destination = destination
        self.token = CancelToken()
        self._status = TaskStatus.PENDING
        self._progress = 0
        self._remote_url: Optional[str] = None
        self._error: Optional[str] = None
        self._error_kind: Optional[ErrorKind] = None

    def __repr__(self) -> str:
        return f"<TransferTask {self.file.name} -> {self.destination.id} {self._status.value} {self._progress}%>"

    @property
    def status(self) -> TaskStatus:
        return self._status

    @property
    def progress(self) -> int:
        return self._progress

    @property
    def remote_url(self) -> Optional[str]:
        return self._remote_url

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self._error_kind

    @property
    def is_terminal(self) -> bool:
        return self._status.is_terminal

    def _transition(self, target: TaskStatus) -> None:
        if target not in _ALLOWED[self._status]:
            raise InvalidTransition(f"{self._status.value} -> {target.value}")
        self._status = target

    def start(self) -> None:
        self._transition(TaskStatus.IN_PROGRESS)

    def report_progress(self, percent: int) -> bool:
        """Record adapter progress. Returns True if the value changed."""
        if self._status != TaskStatus.IN_PROGRESS:
            return False
        percent = max(0, min(100, int(percent)))
        if percent <= self._progress:
            return False
        self._progress = percent
        return True

    def succeed(self, remote_url: str) -> None:
        self._transition(TaskStatus.SUCCEEDED)
        self._progress = 100
        self._remote_url = remote_url

    def fail(self, exc: BaseException) -> None:
        self._transition(TaskStatus.FAILED)
        self._progress = 0
        self._error_kind, self._error = classify(exc)

    def mark_paused(self) -> bool:
        if self._status != TaskStatus.IN_PROGRESS:
            return False
        self._transition(TaskStatus.PAUSED)
        return True

    def mark_resumed(self) -> bool:
        if self._status != TaskStatus.PAUSED:
            return False
        self._transition(TaskStatus.IN_PROGRESS)
        return True

    def cancel(self) -> None:
        """Signal the task's own token. The adapter does the aborting."""
        self.token.cancel()

    def view(self) -> TaskView:
        return TaskView(
            destination_id=self.destination.id,
            display_name=self.destination.name,
            status=self._status,
            progress=self._progress,
            error=self._error,
            remote_url=self._remote_url,
        )

    def outcome(self) -> DestinationOutcome:
        return DestinationOutcome(
            destination_id=self.destination.id,
            destination_name=self.destination.name,
            status=self._status,
            remote_url=self._remote_url,
            error=self._error,
            error_kind=self._error_kind.value if self._error_kind else None,
        )
