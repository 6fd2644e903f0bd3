"""Selects the adapter for a destination by its variant type."""
import logging
from typing import Any, Callable, Dict, Optional

from ..errors import ConfigurationError
from ..models import BuiltinDestination, Destination, EngineConfig, S3Destination
from ..protocols import IBuiltinStore, IDestinationAdapter
from ..utils.naming import submission_timestamp
from .base import BaseAdapter, UnavailableAdapter
from .builtin import BuiltinStoreAdapter
from .s3 import S3Adapter
logger = logging.getLogger(__name__)


class AdapterFactory:
    """
    Builds one adapter per destination for a batch run.

    Adapters are created lazily and cached by destination id. A destination
    whose configuration is rejected gets an UnavailableAdapter, so only that
    destination's tasks fail and no network call is attempted.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        builtin_store: Optional[IBuiltinStore] = None,
        submitted_at: Optional[int] = None,
        s3_client_factory: Optional[Callable[[S3Destination], Any]] = None,
    ):
        self._config = config or EngineConfig()
        self._builtin_store = builtin_store
        self._submitted_at = submitted_at if submitted_at is not None else submission_timestamp()
        self._s3_client_factory = s3_client_factory
        self._adapters: Dict[str, IDestinationAdapter] = {}

    @property
    def submitted_at(self) -> int:
        return self._submitted_at

    def for_destination(self, destination: Destination) -> IDestinationAdapter:
        adapter = self._adapters.get(destination.id)
        if adapter is None:
            adapter = self._build(destination)
            self._adapters[destination.id] = adapter
        return adapter

    def _build(self, destination: Destination) -> BaseAdapter:
        if isinstance(destination, BuiltinDestination):
            return self._build_builtin()
        if isinstance(destination, S3Destination):
            return self._build_s3(destination)
        raise TypeError(f"Unsupported destination type: {type(destination).__name__}")

    def _build_builtin(self) -> BaseAdapter:
        if self._builtin_store is None:
            logger.warning("Built-in store is not configured")
            return UnavailableAdapter(ConfigurationError("built-in store not configured"))
        return BuiltinStoreAdapter(
            self._builtin_store,
            progress_hint=self._config.builtin_progress_hint,
            timeout=self._config.transfer_timeout,
            abort_grace=self._config.abort_grace,
        )

    def _build_s3(self, destination: S3Destination) -> BaseAdapter:
        try:
            return S3Adapter(
                destination,
                endpoint_patterns=self._config.endpoint_patterns,
                timeout=self._config.transfer_timeout,
                abort_grace=self._config.abort_grace,
                submitted_at=self._submitted_at,
                multipart_threshold=self._config.multipart_threshold,
                multipart_chunksize=self._config.multipart_chunksize,
                client_factory=self._s3_client_factory,
            )
        except ConfigurationError as exc:
            logger.warning(f"Destination {destination.id} rejected: {exc}")
            return UnavailableAdapter(exc)
