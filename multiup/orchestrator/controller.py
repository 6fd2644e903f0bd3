"""Pause/resume controller - per batch run cancellation coordinator."""
import asyncio
import logging

from ..models import TaskStatus
from .models import BatchState
logger = logging.getLogger(__name__)


class PauseController:
    """
    Pause is a hard stop, not a freeze.

    pause() labels every in-flight task Paused and signals its token, and
    blocks the coordinator before the next file. resume() only unblocks
    progression; cancelled transfers end Failed and are not retried.
    """

    def __init__(self, state: BatchState):
        self._state = state
        self._paused = False
        self._stopped = False
        self._runnable = asyncio.Event()
        self._runnable.set()

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    def pause(self) -> int:
        """Pause the run. Returns the number of tasks signalled."""
        if self._paused or self._stopped:
            return 0
        self._paused = True
        self._runnable.clear()
        signalled = self._signal_live_tasks(mark_paused=True)
        logger.info(f"Paused: cancelled {signalled} in-flight transfer(s)")
        return signalled

    def resume(self) -> bool:
        """Resume progression to files not yet attempted."""
        if not self._paused or self._stopped:
            return False
        self._paused = False
        for task in self._state.live_tasks:
            task.mark_resumed()
        self._runnable.set()
        logger.info("Resumed")
        return True

    def toggle(self) -> bool:
        """Flip pause state. Returns True if now paused."""
        if self._paused:
            self.resume()
        else:
            self.pause()
        return self._paused

    def stop(self) -> int:
        """Tear down: cancel in-flight transfers and stop advancing for good."""
        if self._stopped:
            return 0
        self._stopped = True
        signalled = self._signal_live_tasks(mark_paused=False)
        self._runnable.set()
        logger.info(f"Stopped: cancelled {signalled} in-flight transfer(s)")
        return signalled

    async def wait_until_runnable(self) -> bool:
        """Block while paused. Returns False once the run is stopped."""
        await self._runnable.wait()
        return not self._stopped

    def _signal_live_tasks(self, mark_paused: bool) -> int:
        # Pending tasks are never signalled; they wait for resume before starting
        signalled = 0
        for task in list(self._state.live_tasks):
            if task.status not in (TaskStatus.IN_PROGRESS, TaskStatus.PAUSED):
                continue
            if mark_paused:
                task.mark_paused()
            task.cancel()
            signalled += 1
        return signalled
