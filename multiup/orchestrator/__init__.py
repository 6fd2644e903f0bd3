"""Orchestrator package - coordinates batch uploads across destinations."""
from .batch import BatchRun
from .core import UploadOrchestrator
from .models import BatchResult, RunState
from .progress import ProgressSummary
from .task import TaskView, TransferTask

__all__ = [
    "UploadOrchestrator",
    "BatchRun",
    "BatchResult",
    "RunState",
    "ProgressSummary",
    "TaskView",
    "TransferTask",
]
