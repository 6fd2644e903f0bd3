"""Core orchestrator - wires services into batch runs."""
import asyncio
import logging
from typing import Any, Callable, List, Optional, Sequence, Set

from ..adapters.factory import AdapterFactory
from ..errors import BatchInProgressError
from ..models import PREFERENCES, EngineConfig, FileItem, S3Destination
from ..protocols import IBuiltinStore, IRecordStore
from ..services.api_client import HTTPAPIClient
from ..services.archive import ArchivePackager, ArchiveResult
from ..services.builtin_store import BuiltinStoreClient
from ..services.destinations import DestinationService
from ..services.local_store import JsonRecordStore
from ..services.repository import HTTPRecordStore
from .batch import BatchRun
from .models import RunState
from .records import best_effort

logger = logging.getLogger(__name__)

LAST_SELECTION_KEY = "last_selection"
_ACTIVE_STATES = (RunState.PENDING, RunState.RUNNING, RunState.PAUSED)


class UploadOrchestrator:
    """
    Orchestrates multi-destination batch uploads using injected services.

    Usage:
        async with UploadOrchestrator(EngineConfig.from_env()) as orchestrator:
            run = await orchestrator.start_batch(files, ["builtin", "acc-1"])
            run.on_notify(lambda note: print(note.message))
            result = await run.wait()

            if run.can_download_archive:
                archive = await orchestrator.build_archive(run)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        store: Optional[IRecordStore] = None,
        builtin_store: Optional[IBuiltinStore] = None,
        s3_client_factory: Optional[Callable[[S3Destination], Any]] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            config: Engine configuration (default: EngineConfig())
            store: Pre-built record store; built from config when omitted
            builtin_store: Pre-built built-in store client; built from config when omitted
            s3_client_factory: Optional boto3 client factory, used by tests
        """
        self._config = config or EngineConfig()
        self._external_store = store
        self._external_builtin = builtin_store
        self._s3_client_factory = s3_client_factory

        # Initialized in __aenter__
        self._api_client: Optional[HTTPAPIClient] = None
        self._builtin_client: Optional[BuiltinStoreClient] = None
        self._store: Optional[IRecordStore] = None
        self._builtin_store: Optional[IBuiltinStore] = None
        self._destinations: Optional[DestinationService] = None

        self._active_run: Optional[BatchRun] = None
        self._background: Set[asyncio.Task] = set()

    async def __aenter__(self):
        """Open HTTP clients and the record store."""
        if self._external_store is not None:
            self._store = self._external_store
        elif self._config.records_url:
            self._api_client = HTTPAPIClient(self._config.records_url)
            await self._api_client.__aenter__()
            self._store = HTTPRecordStore(self._api_client)
        else:
            self._store = JsonRecordStore(self._config.records_path)

        if self._external_builtin is not None:
            self._builtin_store = self._external_builtin
        elif self._config.builtin_url:
            self._builtin_client = BuiltinStoreClient(self._config.builtin_url, timeout=self._config.transfer_timeout)
            await self._builtin_client.__aenter__()
            self._builtin_store = self._builtin_client

        self._destinations = DestinationService(self._store, self._config)
        return self

    async def __aexit__(self, *args):
        """Cleanup resources."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        if self._builtin_client:
            await self._builtin_client.__aexit__(*args)
        if self._api_client:
            await self._api_client.__aexit__(*args)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def store(self) -> IRecordStore:
        if self._store is None:
            raise RuntimeError("UploadOrchestrator not initialized. Use 'async with' context.")
        return self._store

    @property
    def destinations(self) -> DestinationService:
        if self._destinations is None:
            raise RuntimeError("UploadOrchestrator not initialized. Use 'async with' context.")
        return self._destinations

    @property
    def active_run(self) -> Optional[BatchRun]:
        return self._active_run

    async def start_batch(self, files: Sequence[FileItem], destination_ids: Sequence[str]) -> BatchRun:
        """
        Build a BatchRun for files against the selected destinations.

        The run is returned unstarted; call ``start()`` or ``wait()``.
        Raises BatchInProgressError while another run is active.
        """
        if self._active_run is not None and self._active_run.state in _ACTIVE_STATES:
            raise BatchInProgressError("a batch is already running")
        if not files:
            raise ValueError("no files selected")

        destinations = await self.destinations.resolve(destination_ids)
        if not destinations:
            raise ValueError("no usable destinations selected")

        adapters = AdapterFactory(
            self._config,
            builtin_store=self._builtin_store,
            s3_client_factory=self._s3_client_factory,
        )
        selection = [d.id for d in destinations]
        run = BatchRun(
            files,
            destinations,
            adapters,
            store=self._store,
            on_done=lambda finished: self._on_run_done(finished, selection),
        )
        self._active_run = run
        logger.info(f"Batch of {len(files)} file(s) to {len(destinations)} destination(s)")
        return run

    async def build_archive(self, run: BatchRun) -> ArchiveResult:
        """Zip every file the run completed. Only valid once the run has ended."""
        if run.is_running:
            raise BatchInProgressError("archive is unavailable while the batch is running")
        packager = ArchivePackager(fetch_timeout=self._config.fetch_timeout)
        return await packager.build(run.completed_records)

    async def last_selection(self) -> List[str]:
        """Destination ids saved after the previous batch, empty if none."""
        records = await self.store.list(PREFERENCES)
        for record in records:
            if record.get("key") == LAST_SELECTION_KEY:
                return list(record.get("value") or [])
        return []

    def _on_run_done(self, run: BatchRun, selection: List[str]) -> None:
        if self._active_run is run:
            self._active_run = None
        task = asyncio.create_task(best_effort(self._save_selection(selection), "preference write"))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _save_selection(self, selection: List[str]) -> None:
        store = self.store
        for record in await store.list(PREFERENCES):
            if record.get("key") == LAST_SELECTION_KEY:
                await store.update(PREFERENCES, str(record["id"]), {"value": selection})
                return
        await store.create(PREFERENCES, {"key": LAST_SELECTION_KEY, "value": selection})
