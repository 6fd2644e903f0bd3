"""Progress aggregator - read-only summaries over the live task set."""
from dataclasses import dataclass
from typing import List, Optional

from ..models import TaskStatus
from .controller import PauseController
from .models import BatchState
from .task import TaskView


@dataclass(frozen=True)
class ProgressSummary:
    """User-facing summary of a batch run."""
    current_file: Optional[str]
    file_index: int
    file_count: int
    total: int
    pending: int
    in_progress: int
    paused: int
    succeeded: int
    failed: int
    percent: float
    is_paused: bool
    is_running: bool
    completed_files: int

    @property
    def settled(self) -> int:
        return self.succeeded + self.failed


class ProgressAggregator:
    """Derives summaries from BatchState. Never mutates it."""

    def __init__(self, state: BatchState, controller: PauseController):
        self._state = state
        self._controller = controller
        self._running = False

    def set_running(self, running: bool) -> None:
        self._running = running

    def task_views(self) -> List[TaskView]:
        return [task.view() for task in self._state.live_tasks]

    def summary(self) -> ProgressSummary:
        views = self.task_views()
        counts = {status: 0 for status in TaskStatus}
        for view in views:
            counts[view.status] += 1

        if views:
            percent = sum(100 if v.status.is_terminal else v.progress for v in views) / len(views)
        else:
            percent = 0.0

        current = self._state.current_file
        return ProgressSummary(
            current_file=current.name if current else None,
            file_index=self._state.file_index,
            file_count=len(self._state.files),
            total=len(views),
            pending=counts[TaskStatus.PENDING],
            in_progress=counts[TaskStatus.IN_PROGRESS],
            paused=counts[TaskStatus.PAUSED],
            succeeded=counts[TaskStatus.SUCCEEDED],
            failed=counts[TaskStatus.FAILED],
            percent=round(percent, 1),
            is_paused=self._controller.is_paused,
            is_running=self._running,
            completed_files=len(self._state.completed),
        )
