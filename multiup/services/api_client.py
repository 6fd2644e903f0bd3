"""HTTP adapter for record store API operations."""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx


class HTTPAPIClient:
    """
    HTTP client adapter for API calls.

    Implements IAPIClient protocol.
    """

    def __init__(self, base_url: str, timeout: int = 60, transport: Optional[httpx.AsyncBaseTransport] = None):
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

    async def post(self, endpoint: str, json: Dict) -> Any:
        return await self._request("POST", endpoint, json=json)

    async def get(self, endpoint: str, params: Optional[Dict] = None) -> Any:
        return await self._request("GET", endpoint, params=params)

    async def patch(self, endpoint: str, json: Dict) -> Any:
        return await self._request("PATCH", endpoint, json=json)

    async def delete(self, endpoint: str) -> Any:
        return await self._request("DELETE", endpoint)

    async def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        if not self._client:
            raise RuntimeError("HTTPAPIClient not initialized. Use 'async with' context.")

        max_retries = 3
        last_exception = None

        for attempt in range(max_retries):
            try:
                response = await self._client.request(method, endpoint, **kwargs)

                if response.status_code >= 500 and attempt < max_retries - 1:
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue

                if response.status_code >= 400:
                    try:
                        error_detail = response.json()
                    except Exception:
                        error_detail = response.text
                    raise RuntimeError(
                        f"API error {response.status_code} on {method} {endpoint}: {error_detail}"
                    )

                return response
            except (httpx.RequestError, httpx.TimeoutException) as exc:
                last_exception = exc
                if attempt < max_retries - 1:
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue
                raise

        if last_exception:
            raise last_exception
        raise RuntimeError(f"Failed to {method} {endpoint} after {max_retries} attempts")
