"""Services for multiup module."""
from .api_client import HTTPAPIClient
from .archive import ARCHIVE_NOTICE, ArchivePackager, ArchiveResult
from .builtin_store import BuiltinStoreClient
from .destinations import DestinationService, validate_destination_fields
from .history import HistoryTotals, filter_upload_logs, summarize_upload_logs
from .local_store import JsonRecordStore
from .repository import HTTPRecordStore
from .validator import FileValidator, ValidationResult

__all__ = [
    "ARCHIVE_NOTICE",
    "ArchivePackager",
    "ArchiveResult",
    "BuiltinStoreClient",
    "DestinationService",
    "FileValidator",
    "HTTPAPIClient",
    "HTTPRecordStore",
    "HistoryTotals",
    "JsonRecordStore",
    "ValidationResult",
    "filter_upload_logs",
    "summarize_upload_logs",
    "validate_destination_fields",
]
