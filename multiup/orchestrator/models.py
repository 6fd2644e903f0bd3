"""Orchestrator data models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..models import CompletedFileRecord, Destination, FileItem, UploadLogEntry
from .task import TransferTask


class RunState(Enum):
    """State of a batch run."""
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BatchState:
    """
    Mutable per-run store.

    Written only by the coordinator and the pause controller; the progress
    aggregator reads it.
    """
    files: List[FileItem]
    destinations: List[Destination]
    live_tasks: List[TransferTask] = field(default_factory=list)
    completed: List[CompletedFileRecord] = field(default_factory=list)
    entries: List[UploadLogEntry] = field(default_factory=list)
    current_file: Optional[FileItem] = None
    file_index: int = 0
    processed_files: int = 0


@dataclass
class BatchResult:
    """Result of a batch run."""
    total_files: int
    processed_files: int
    entries: List[UploadLogEntry]
    completed: List[CompletedFileRecord]
    stopped: bool = False

    @property
    def succeeded_transfers(self) -> int:
        return sum(len(e.succeeded) for e in self.entries)

    @property
    def failed_transfers(self) -> int:
        return sum(len(e.failed) for e in self.entries)

    @property
    def fully_failed(self) -> bool:
        """Every destination failed for every processed file."""
        return self.processed_files > 0 and self.succeeded_transfers == 0

    @property
    def success(self) -> bool:
        return not self.fully_failed
