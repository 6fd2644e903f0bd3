"""
Error taxonomy and the user-facing error vocabulary.

Raw transport/SDK messages never leave this layer: everything a user sees is
one of the fixed strings below.
"""
from enum import Enum
from typing import Tuple


TRANSFER_FAILED = "transfer failed"
DESTINATION_UNREACHABLE = "destination unreachable"
CANCELLED = "cancelled"


class ErrorKind(Enum):
    """Classification used for logging. Display text comes from the vocabulary."""
    CONFIGURATION = "configuration"
    TRANSFER = "transfer"
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class MultiUpError(Exception):
    """Base error. `user_message` is always safe to display."""
    kind = ErrorKind.TRANSFER
    user_message = TRANSFER_FAILED


class ValidationError(MultiUpError):
    """File rejected before any transfer begins."""

    def __init__(self, message: str = "file rejected", reasons=None):
        super().__init__(message)
        self.reasons = list(reasons or [])


class ConfigurationError(MultiUpError):
    """Malformed destination endpoint or credentials."""
    kind = ErrorKind.CONFIGURATION
    user_message = DESTINATION_UNREACHABLE


class TransferError(MultiUpError):
    """Network/protocol failure during transfer."""


class DestinationUnreachableError(TransferError):
    """Destination could not be reached."""
    kind = ErrorKind.UNREACHABLE
    user_message = DESTINATION_UNREACHABLE


class TransferTimeoutError(DestinationUnreachableError):
    """Transfer exceeded its bounded timeout."""
    kind = ErrorKind.TIMEOUT


class CancellationError(MultiUpError):
    """Transfer aborted by pause."""
    kind = ErrorKind.CANCELLED
    user_message = CANCELLED


class LogWriteError(MultiUpError):
    """Upload log could not be written. Never user-visible."""


class ArchiveFetchError(MultiUpError):
    """One archive member could not be fetched."""


class ArchiveError(MultiUpError):
    """Archive could not be produced at all."""
    user_message = "archive failed"


class BatchInProgressError(MultiUpError):
    """A batch is already running on this orchestrator."""
    user_message = "an upload is already running"


def classify(exc: BaseException) -> Tuple[ErrorKind, str]:
    """Map any exception to (kind, display message)."""
    if isinstance(exc, MultiUpError):
        return exc.kind, exc.user_message
    return ErrorKind.TRANSFER, TRANSFER_FAILED
