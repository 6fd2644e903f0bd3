"""Adapter building blocks: cancellation token, endpoint policy, cancellable runner."""
import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Iterable, Optional

from ..errors import CancellationError, ConfigurationError, TransferTimeoutError
from ..models import Destination, FileItem, TransferResult
from ..protocols import ProgressCallback
logger = logging.getLogger(__name__)


class CancelToken:
    """
    Per-task cancellation token.

    Owned by one TransferTask. The pause controller only ever calls cancel();
    adapters observe it through wait()/cancelled and abort their own I/O.
    """

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise CancellationError("transfer cancelled")


def validate_endpoint(endpoint: Optional[str], patterns: Iterable[str]) -> str:
    """Return the endpoint if it matches the allow-list, else raise ConfigurationError."""
    value = (endpoint or "").strip()
    if value and any(re.match(pattern, value) for pattern in patterns):
        return value
    raise ConfigurationError("endpoint rejected by allow-list")


class BaseAdapter:
    """Shared cancellation/timeout handling for destination adapters."""

    def __init__(self, timeout: Optional[float] = 30.0, abort_grace: float = 5.0):
        self._timeout = timeout
        self._abort_grace = abort_grace

    async def transfer(
        self,
        file: FileItem,
        destination: Destination,
        on_progress: ProgressCallback,
        cancel_signal: CancelToken,
    ) -> TransferResult:
        raise NotImplementedError

    async def run_cancellable(
        self,
        operation: Awaitable[Any],
        token: CancelToken,
        on_abort: Optional[Callable[[], None]] = None,
    ) -> Any:
        """
        Run operation until it finishes, the token fires or the timeout expires.

        On cancel/timeout, on_abort is called first (transport-level abort for
        work running outside the event loop) and the operation gets
        abort_grace seconds to unwind before it is cancelled outright.
        """
        transfer = asyncio.ensure_future(operation)
        if token.cancelled:
            transfer.cancel()
            await asyncio.gather(transfer, return_exceptions=True)
            raise CancellationError("transfer cancelled")

        waiter = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {transfer, waiter},
                timeout=self._timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            if on_abort is not None:
                on_abort()
            transfer.cancel()
            raise
        finally:
            if not waiter.done():
                waiter.cancel()

        if transfer in done:
            return transfer.result()

        cancelled = waiter in done
        logger.debug("Aborting transfer (%s)", "cancelled" if cancelled else "timeout")
        await self._abort(transfer, on_abort)
        if cancelled:
            raise CancellationError("transfer cancelled")
        raise TransferTimeoutError("transfer timed out")

    async def _abort(self, transfer: asyncio.Future, on_abort: Optional[Callable[[], None]]) -> None:
        if on_abort is not None:
            on_abort()
            await asyncio.wait({transfer}, timeout=self._abort_grace)
            if not transfer.done():
                logger.warning("Transfer did not stop within %.1fs of abort", self._abort_grace)
        if not transfer.done():
            transfer.cancel()
        await asyncio.gather(transfer, return_exceptions=True)


class UnavailableAdapter(BaseAdapter):
    """Stands in for a destination whose configuration was rejected. No I/O."""

    def __init__(self, error: ConfigurationError):
        super().__init__()
        self._error = error

    async def transfer(self, file, destination, on_progress, cancel_signal) -> TransferResult:
        raise self._error
