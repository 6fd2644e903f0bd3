"""
Archive Packager - bundle completed uploads into one zip.

Each file is fetched back from its remote URL. A file that reached several
destinations is fetched once, trying the next destination when a fetch fails.
"""
import asyncio
import io
import logging
import time
import zipfile
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import httpx

from ..errors import ArchiveError, ArchiveFetchError
from ..models import CompletedFileRecord
from ..utils.naming import sanitize_file_name

logger = logging.getLogger(__name__)

ARCHIVE_NOTICE = (
    "The archive is not password protected. "
    "Use an external tool if the contents need encryption."
)


@dataclass
class ArchiveResult:
    """Zip bytes plus what made it in."""
    filename: str
    data: bytes
    file_count: int
    failed: List[str] = field(default_factory=list)
    notice: str = ARCHIVE_NOTICE

    def write_to(self, directory: Path) -> Path:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / self.filename
        target.write_bytes(self.data)
        return target


class ArchivePackager:
    """Fetches completed records and packages them as a deflated zip."""

    def __init__(self, fetch_timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._fetch_timeout = fetch_timeout
        self._transport = transport

    async def build(self, records: Sequence[CompletedFileRecord]) -> ArchiveResult:
        if not records:
            raise ArchiveError("no completed files to archive")

        groups = self._group_by_name(records)
        logger.info(f"Packaging {len(groups)} file(s) from {len(records)} record(s)")

        async with httpx.AsyncClient(
            timeout=self._fetch_timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            fetched = await asyncio.gather(
                *(self._fetch_first(client, name, urls) for name, urls in groups.items())
            )

        contents: List[Tuple[str, bytes]] = []
        failed: List[str] = []
        for name, data in fetched:
            if data is None:
                failed.append(name)
            else:
                contents.append((name, data))

        if not contents:
            raise ArchiveError("no files could be fetched")

        if failed:
            logger.warning(f"Skipped {len(failed)} file(s) in archive: {', '.join(failed)}")

        return ArchiveResult(
            filename=f"upload-files-{int(time.time() * 1000)}.zip",
            data=self._zip(contents),
            file_count=len(contents),
            failed=failed,
        )

    @staticmethod
    def _group_by_name(records: Sequence[CompletedFileRecord]) -> Dict[str, List[str]]:
        groups: Dict[str, List[str]] = OrderedDict()
        for record in records:
            urls = groups.setdefault(sanitize_file_name(record.file_name), [])
            if record.remote_url not in urls:
                urls.append(record.remote_url)
        return groups

    async def _fetch_first(
        self, client: httpx.AsyncClient, name: str, urls: List[str]
    ) -> Tuple[str, Optional[bytes]]:
        for url in urls:
            try:
                return name, await self._fetch(client, url)
            except ArchiveFetchError as exc:
                logger.debug(f"Fetch failed for {name}: {exc}")
        return name, None

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> bytes:
        try:
            response = await asyncio.wait_for(client.get(url), timeout=self._fetch_timeout)
        except asyncio.TimeoutError as exc:
            raise ArchiveFetchError("fetch timed out") from exc
        except httpx.HTTPError as exc:
            raise ArchiveFetchError(f"fetch error: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            raise ArchiveFetchError(f"fetch returned {response.status_code}")
        return response.content

    @staticmethod
    def _zip(contents: List[Tuple[str, bytes]]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
            for name, data in contents:
                zf.writestr(name, data)
        return buffer.getvalue()
