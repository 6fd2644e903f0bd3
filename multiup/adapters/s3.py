"""
S3-compatible destination adapter.

boto3 is blocking, so the upload runs in a worker thread. Cancellation is
delivered to the worker through the progress callback: once the abort flag is
set the next callback raises, s3transfer aborts the multipart upload and the
worker exits.
"""
import asyncio
import logging
import threading
from typing import Any, Callable, Iterable, Optional

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from ..errors import (
    CancellationError,
    ConfigurationError,
    DestinationUnreachableError,
    TransferError,
)
from ..models import DEFAULT_ENDPOINT_PATTERNS, FileItem, S3Destination, TransferResult
from ..utils.naming import build_object_key
from .base import BaseAdapter, CancelToken, validate_endpoint
logger = logging.getLogger(__name__)

MB = 1024 * 1024


class TransferAborted(Exception):
    """Raised inside the worker thread to stop s3transfer."""


class ProgressTracker:
    """s3transfer callback: accumulates bytes and enforces the abort flag."""

    def __init__(self, total_bytes: int, report: Callable[[int], None], abort: threading.Event):
        self._total = total_bytes
        self._report = report
        self._abort = abort
        self._seen = 0
        self._last_percent = -1
        self._lock = threading.Lock()

    def __call__(self, bytes_amount: int) -> None:
        if self._abort.is_set():
            raise TransferAborted()
        with self._lock:
            self._seen += bytes_amount
            if self._total <= 0:
                return
            percent = min(100, round(self._seen * 100 / self._total))
            if percent == self._last_percent:
                return
            self._last_percent = percent
        self._report(percent)


class S3Adapter(BaseAdapter):
    """Multipart-capable transfer to one S3-compatible account."""

    def __init__(
        self,
        destination: S3Destination,
        endpoint_patterns: Iterable[str] = DEFAULT_ENDPOINT_PATTERNS,
        timeout: Optional[float] = 30.0,
        abort_grace: float = 5.0,
        submitted_at: Optional[int] = None,
        multipart_threshold: int = 8 * MB,
        multipart_chunksize: int = 8 * MB,
        client_factory: Optional[Callable[[S3Destination], Any]] = None,
    ):
        super().__init__(timeout=timeout, abort_grace=abort_grace)
        # Fails fast, before any client exists
        self._endpoint = validate_endpoint(destination.endpoint, endpoint_patterns)
        if not (destination.bucket and destination.access_key_id and destination.secret_access_key):
            raise ConfigurationError("incomplete destination credentials")

        self._destination = destination
        self._submitted_at = submitted_at
        self._client_factory = client_factory
        self._client: Any = None
        self._transfer_config = TransferConfig(
            multipart_threshold=multipart_threshold,
            multipart_chunksize=multipart_chunksize,
        )

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _get_client(self):
        """Build the client once, on the calling (event loop) thread."""
        if self._client is None and self._client_factory is not None:
            self._client = self._client_factory(self._destination)
        if self._client is None:
            # One session per adapter; boto3.client() shares the default session
            session = boto3.session.Session()
            self._client = session.client(
                "s3",
                endpoint_url=self._endpoint,
                aws_access_key_id=self._destination.access_key_id,
                aws_secret_access_key=self._destination.secret_access_key,
                config=Config(
                    region_name=self._destination.region,
                    signature_version="s3v4",
                    s3={"addressing_style": "path"},
                    connect_timeout=self._timeout or 60,
                    read_timeout=self._timeout or 60,
                    retries={"max_attempts": 2},
                ),
            )
        return self._client

    def remote_url(self, key: str) -> str:
        return f"{self._endpoint.rstrip('/')}/{self._destination.bucket}/{key}"

    async def transfer(
        self,
        file: FileItem,
        destination: S3Destination,
        on_progress: Callable[[int], None],
        cancel_signal: CancelToken,
    ) -> TransferResult:
        cancel_signal.raise_if_cancelled()

        key = build_object_key(file.name, self._submitted_at)
        loop = asyncio.get_running_loop()
        abort = threading.Event()
        tracker = ProgressTracker(
            file.size,
            lambda percent: loop.call_soon_threadsafe(on_progress, percent),
            abort,
        )

        try:
            client = self._get_client()
            worker = loop.run_in_executor(None, self._upload_blocking, client, file, key, tracker, abort)
            await self.run_cancellable(worker, cancel_signal, on_abort=abort.set)
        except TransferAborted as exc:
            raise CancellationError("transfer cancelled") from exc
        except (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError) as exc:
            logger.warning(f"[security] transfer error on {self._destination.id}")
            logger.debug("S3 unreachable: %s", exc)
            raise DestinationUnreachableError("destination unreachable") from exc
        except (BotoCoreError, ClientError, OSError) as exc:
            logger.warning(f"[security] transfer error on {self._destination.id}")
            logger.debug("S3 transfer error: %s", exc)
            raise TransferError("transfer failed") from exc

        on_progress(100)
        return TransferResult(remote_url=self.remote_url(key))

    def _upload_blocking(
        self, client: Any, file: FileItem, key: str, tracker: ProgressTracker, abort: threading.Event
    ) -> None:
        if abort.is_set():
            raise TransferAborted()
        with file.open() as body:
            client.upload_fileobj(
                body,
                self._destination.bucket,
                key,
                ExtraArgs={
                    "ContentType": file.content_type,
                    "ServerSideEncryption": "AES256",
                },
                Callback=tracker,
                Config=self._transfer_config,
            )

    async def check_connection(self) -> bool:
        """List buckets with the configured credentials. Never raises."""
        try:
            client = self._get_client()
            await asyncio.to_thread(client.list_buckets)
            return True
        except Exception as exc:
            logger.debug("Connection test failed: %s", exc)
            return False
