"""
Models for multiup.

Immutable dataclasses following Single Responsibility Principle.
"""
from __future__ import annotations

import mimetypes
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Tuple, Union


BUILTIN_DESTINATION_ID = "builtin"

# Record store entity kinds
DESTINATIONS = "destinations"
UPLOAD_LOGS = "upload_logs"
PREFERENCES = "preferences"

DEFAULT_ENDPOINT_PATTERNS: Tuple[str, ...] = (
    r"^https?://[A-Za-z0-9.-]+\.idrivee2\.com$",
    r"^https://s3[.-]([a-z0-9-]+\.)?amazonaws\.com$",
)


class DestinationKind(Enum):
    """Kind of upload destination."""
    BUILTIN = "builtin"
    S3 = "s3"


@dataclass(frozen=True)
class BuiltinDestination:
    """The built-in object store. Always available, no credentials."""
    name: str = "Built-in storage"

    @property
    def id(self) -> str:
        return BUILTIN_DESTINATION_ID

    @property
    def kind(self) -> DestinationKind:
        return DestinationKind.BUILTIN

    @property
    def is_active(self) -> bool:
        return True


@dataclass(frozen=True)
class S3Destination:
    """Externally configured S3-compatible account."""
    id: str
    name: str
    endpoint: str
    bucket: str
    access_key_id: str = field(repr=False)
    secret_access_key: str = field(repr=False)
    is_active: bool = True

    @property
    def kind(self) -> DestinationKind:
        return DestinationKind.S3

    @property
    def region(self) -> str:
        """Region embedded in the endpoint host (s3.<region>.idrivee2...)."""
        match = re.search(r"s3\.([^.]+)\.idrivee2", self.endpoint)
        return match.group(1) if match else "us-east-1"

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "S3Destination":
        """Build from a record store entry."""
        return cls(
            id=str(record["id"]),
            name=record.get("name") or "Unknown",
            endpoint=record.get("endpoint", ""),
            bucket=record.get("bucket_name", ""),
            access_key_id=record.get("access_key_id", ""),
            secret_access_key=record.get("secret_access_key", ""),
            is_active=bool(record.get("is_active", True)),
        )


Destination = Union[BuiltinDestination, S3Destination]


@dataclass(frozen=True)
class FileItem:
    """A file accepted for upload. Read-only to the orchestrator."""
    name: str
    size: int
    content_type: str
    path: Path

    @classmethod
    def from_path(cls, path: Path, content_type: Optional[str] = None) -> "FileItem":
        path = Path(path)
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            size=path.stat().st_size,
            content_type=content_type or guessed or "application/octet-stream",
            path=path,
        )

    def open(self) -> BinaryIO:
        return open(self.path, "rb")

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


class TaskStatus(Enum):
    """Transfer task status."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.SUCCEEDED, TaskStatus.FAILED)


@dataclass(frozen=True)
class TransferResult:
    """Result of one adapter transfer."""
    remote_url: str


@dataclass(frozen=True)
class CompletedFileRecord:
    """A file that reached one destination. Feeds the archive packager."""
    file_name: str
    remote_url: str
    destination_id: str


@dataclass(frozen=True)
class DestinationOutcome:
    """Outcome of one file on one destination."""
    destination_id: str
    destination_name: str
    status: TaskStatus
    remote_url: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == TaskStatus.SUCCEEDED

    def to_record(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "destination": self.destination_id,
            "destination_name": self.destination_name,
            "status": "success" if self.success else "failed",
        }
        if self.remote_url:
            data["url"] = self.remote_url
        if self.error:
            data["error_message"] = self.error
        return data


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UploadLogEntry:
    """Summary of one file's outcome across all selected destinations."""
    file_name: str
    file_size: int
    file_type: str
    destinations: Tuple[str, ...]
    outcomes: Tuple[DestinationOutcome, ...]
    duration_ms: int
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def succeeded(self) -> List[DestinationOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> List[DestinationOutcome]:
        return [o for o in self.outcomes if not o.success]

    def to_record(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "file_size": self.file_size,
            "file_type": self.file_type,
            "destinations": list(self.destinations),
            "upload_results": [o.to_record() for o in self.outcomes],
            "upload_duration_ms": self.duration_ms,
            "created_date": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Notification:
    """Toast-style message for the user. Never carries raw exception text."""
    level: str  # success, error, info, warning
    message: str


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration for the upload engine."""
    transfer_timeout: float = 30.0
    fetch_timeout: float = 30.0
    abort_grace: float = 5.0
    builtin_progress_hint: int = 50
    endpoint_patterns: Tuple[str, ...] = DEFAULT_ENDPOINT_PATTERNS
    builtin_url: Optional[str] = None
    records_url: Optional[str] = None
    records_path: Optional[Path] = None
    max_file_size: int = 15 * 1024 * 1024
    max_files: int = 10
    multipart_threshold: int = 8 * 1024 * 1024
    multipart_chunksize: int = 8 * 1024 * 1024

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build config from MULTIUP_* environment variables."""
        patterns = os.getenv("MULTIUP_ENDPOINT_PATTERNS")
        records_path = os.getenv("MULTIUP_RECORDS_PATH")
        return cls(
            transfer_timeout=_env_float("MULTIUP_TRANSFER_TIMEOUT", 30.0),
            fetch_timeout=_env_float("MULTIUP_FETCH_TIMEOUT", 30.0),
            abort_grace=_env_float("MULTIUP_ABORT_GRACE", 5.0),
            builtin_progress_hint=_env_int("MULTIUP_BUILTIN_PROGRESS_HINT", 50),
            endpoint_patterns=(
                tuple(p.strip() for p in patterns.split(",") if p.strip())
                if patterns
                else DEFAULT_ENDPOINT_PATTERNS
            ),
            builtin_url=os.getenv("MULTIUP_BUILTIN_URL") or None,
            records_url=os.getenv("MULTIUP_RECORDS_URL") or None,
            records_path=Path(records_path).expanduser() if records_path else None,
            max_file_size=_env_int("MULTIUP_MAX_FILE_SIZE", 15 * 1024 * 1024),
            max_files=_env_int("MULTIUP_MAX_FILES", 10),
        )
