"""
Record Repository - Single Responsibility: persist records to the record store API.

Implements Repository Pattern for data access.
"""
from typing import Any, Dict, List, Optional

from ..protocols import IAPIClient, IRecordStore


class HTTPRecordStore(IRecordStore):
    """
    Record store backed by a REST API.

    Entities live under ``/entities/<kind>``; list accepts ``sort`` (leading
    '-' for descending) and ``limit`` query parameters.
    """

    def __init__(self, api_client: IAPIClient):
        """
        Initialize repository.

        Args:
            api_client: HTTP client for API calls
        """
        self._api = api_client

    @staticmethod
    def _path(kind: str, record_id: Optional[str] = None) -> str:
        if record_id is None:
            return f"/entities/{kind}"
        return f"/entities/{kind}/{record_id}"

    async def create(self, kind: str, entry: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._api.post(self._path(kind), json=entry)
        return response.json()

    async def list(
        self, kind: str, order_key: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if order_key:
            params["sort"] = order_key
        if limit is not None:
            params["limit"] = limit
        response = await self._api.get(self._path(kind), params=params or None)
        data = response.json()
        if isinstance(data, dict):
            return list(data.get("items", []))
        return list(data)

    async def update(self, kind: str, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._api.patch(self._path(kind, record_id), json=patch)
        return response.json()

    async def delete(self, kind: str, record_id: str) -> None:
        await self._api.delete(self._path(kind, record_id))
