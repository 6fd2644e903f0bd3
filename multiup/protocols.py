"""
Protocols (Interfaces) for Dependency Inversion.

Following Interface Segregation Principle - small, focused interfaces.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from .models import Destination, FileItem, TransferResult


ProgressCallback = Callable[[int], None]


@runtime_checkable
class ICancelSignal(Protocol):
    """Cooperative cancellation signal observed by adapters."""

    @property
    def cancelled(self) -> bool:
        ...

    async def wait(self) -> None:
        ...


@runtime_checkable
class IDestinationAdapter(Protocol):
    """Interface for one destination kind's transfer primitive."""

    async def transfer(
        self,
        file: FileItem,
        destination: Destination,
        on_progress: ProgressCallback,
        cancel_signal: ICancelSignal,
    ) -> TransferResult:
        """Transfer file, return the remote URL. Raises on failure."""
        ...


@runtime_checkable
class IBuiltinStore(Protocol):
    """Interface for the built-in store upload call (no progress)."""

    async def upload(self, file: FileItem) -> Dict[str, Any]:
        """Upload file, return a mapping containing its URL."""
        ...


@runtime_checkable
class IAPIClient(Protocol):
    """Interface for API operations."""

    async def post(self, endpoint: str, json: Dict) -> Any:
        ...

    async def get(self, endpoint: str, params: Optional[Dict] = None) -> Any:
        ...

    async def patch(self, endpoint: str, json: Dict) -> Any:
        ...

    async def delete(self, endpoint: str) -> Any:
        ...


class IRecordStore(ABC):
    """Interface for the external record store (Repository Pattern)."""

    @abstractmethod
    async def create(self, kind: str, entry: Dict[str, Any]) -> Dict[str, Any]:
        """Create a record, return it with its id."""
        pass

    @abstractmethod
    async def list(
        self, kind: str, order_key: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """List records. A leading '-' on order_key sorts descending."""
        pass

    @abstractmethod
    async def update(self, kind: str, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a partial update."""
        pass

    @abstractmethod
    async def delete(self, kind: str, record_id: str) -> None:
        """Delete a record."""
        pass
