"""HTTP client for the built-in object store."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import DestinationUnreachableError, TransferError
from ..models import FileItem

logger = logging.getLogger(__name__)


class BuiltinStoreClient:
    """
    Upload primitive of the built-in store: ``upload(file) -> {"url": ...}``.

    Implements IBuiltinStore protocol. The store reports no progress.
    """

    def __init__(self, base_url: str, timeout: float = 60, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()

    async def upload(self, file: FileItem) -> Dict[str, Any]:
        if not self._client:
            raise RuntimeError("BuiltinStoreClient not initialized. Use 'async with' context.")

        content = await asyncio.to_thread(file.read_bytes)
        try:
            response = await self._client.post(
                "/upload",
                files={"file": (file.name, content, file.content_type)},
            )
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            logger.debug("Built-in store unreachable: %s", exc)
            raise DestinationUnreachableError("built-in store unreachable") from exc
        except httpx.HTTPError as exc:
            logger.debug("Built-in store transport error: %s", exc)
            raise TransferError("built-in store transport error") from exc

        if response.status_code >= 500:
            raise DestinationUnreachableError(f"built-in store returned {response.status_code}")
        if response.status_code >= 400:
            raise TransferError(f"built-in store returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise TransferError("built-in store returned invalid JSON") from exc

        url = data.get("file_url") or data.get("url")
        if not url:
            raise TransferError("built-in store returned no url")
        return {"url": url}
