"""
MultiUp - Upload files to several storage destinations at once.

Each file is sent to every selected destination concurrently; files are
processed one after another. Destinations are the built-in object store and
any number of S3-compatible accounts.

Usage:
    from multiup import UploadOrchestrator, EngineConfig, FileItem

    async with UploadOrchestrator(EngineConfig.from_env()) as orchestrator:
        files = [FileItem.from_path(p) for p in paths]
        run = await orchestrator.start_batch(files, ["builtin", "acc-1"])

        run.on_task_progress(lambda view: print(f"{view.display_name}: {view.progress}%"))
        run.on_notify(lambda note: print(note.message))

        result = await run.wait()

        # Zip everything that made it to at least one destination
        if run.can_download_archive:
            archive = await orchestrator.build_archive(run)
            archive.write_to(Path("."))
"""
from .orchestrator import BatchResult, BatchRun, RunState, UploadOrchestrator
from .models import (
    BuiltinDestination,
    EngineConfig,
    FileItem,
    Notification,
    S3Destination,
    TaskStatus,
    UploadLogEntry,
)
from .services import (
    ArchivePackager,
    DestinationService,
    FileValidator,
    HTTPRecordStore,
    JsonRecordStore,
)

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadOrchestrator",
    "BatchRun",
    "BatchResult",
    "RunState",
    # Models
    "BuiltinDestination",
    "S3Destination",
    "EngineConfig",
    "FileItem",
    "Notification",
    "TaskStatus",
    "UploadLogEntry",
    # Services
    "ArchivePackager",
    "DestinationService",
    "FileValidator",
    "HTTPRecordStore",
    "JsonRecordStore",
]
