"""Adapter for the built-in object store."""
import logging

from ..errors import TransferError
from ..models import TransferResult
from ..protocols import IBuiltinStore
from .base import BaseAdapter
logger = logging.getLogger(__name__)


class BuiltinStoreAdapter(BaseAdapter):
    """
    Wraps the built-in store's single opaque upload call.

    The store has no progress granularity, so progress jumps to a fixed hint
    when the call starts and to 100 when it returns.
    """

    def __init__(self, store: IBuiltinStore, progress_hint: int = 50, timeout: float = 30.0, abort_grace: float = 5.0):
        super().__init__(timeout=timeout, abort_grace=abort_grace)
        self._store = store
        self._progress_hint = progress_hint

    async def transfer(self, file, destination, on_progress, cancel_signal) -> TransferResult:
        cancel_signal.raise_if_cancelled()
        on_progress(self._progress_hint)

        response = await self.run_cancellable(self._store.upload(file), cancel_signal)

        url = (response or {}).get("url") or (response or {}).get("file_url")
        if not url:
            raise TransferError("built-in store returned no url")

        on_progress(100)
        logger.debug(f"Built-in store accepted {file.name}")
        return TransferResult(remote_url=url)
