"""Tests for the archive packager."""
import io
import re
import zipfile

import httpx
import pytest

from multiup.errors import ArchiveError
from multiup.models import CompletedFileRecord
from multiup.services.archive import ARCHIVE_NOTICE, ArchivePackager


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.startswith("/slow"):
        raise httpx.ReadTimeout("timed out", request=request)
    if path.startswith("/down"):
        raise httpx.ConnectError("refused", request=request)
    if path.startswith("/missing"):
        return httpx.Response(404)
    return httpx.Response(200, content=f"content of {path}".encode())


@pytest.fixture
def packager():
    return ArchivePackager(fetch_timeout=1, transport=httpx.MockTransport(_handler))


def _record(name, url, destination="builtin"):
    return CompletedFileRecord(file_name=name, remote_url=url, destination_id=destination)


def _open(result):
    return zipfile.ZipFile(io.BytesIO(result.data))


class TestArchivePackager:
    @pytest.mark.asyncio
    async def test_one_timeout_keeps_the_rest(self, packager):
        records = [
            _record("a.png", "https://files.test/ok/a.png"),
            _record("b.pdf", "https://files.test/slow/b.pdf"),
            _record("c.txt", "https://files.test/ok/c.txt"),
        ]

        result = await packager.build(records)

        with _open(result) as zf:
            assert sorted(zf.namelist()) == ["a.png", "c.txt"]
            assert zf.read("a.png") == b"content of /ok/a.png"
            assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in zf.infolist())
        assert result.file_count == 2
        assert result.failed == ["b.pdf"]
        assert re.fullmatch(r"upload-files-\d+\.zip", result.filename)

    @pytest.mark.asyncio
    async def test_notice_mentions_missing_password(self, packager):
        result = await packager.build([_record("a.png", "https://files.test/ok/a.png")])
        assert result.notice == ARCHIVE_NOTICE
        assert "not password protected" in result.notice

    @pytest.mark.asyncio
    async def test_duplicate_names_fetched_once_with_fallback(self, packager):
        records = [
            _record("a.png", "https://files.test/down/a.png", "acc-1"),
            _record("a.png", "https://files.test/ok/a.png", "builtin"),
            _record("a.png", "https://files.test/ok/other/a.png", "acc-2"),
        ]

        result = await packager.build(records)

        with _open(result) as zf:
            assert zf.namelist() == ["a.png"]
            assert zf.read("a.png") == b"content of /ok/a.png"
        assert result.failed == []

    @pytest.mark.asyncio
    async def test_entry_names_are_sanitized(self, packager):
        result = await packager.build([_record("../../etc/passwd", "https://files.test/ok/p")])
        with _open(result) as zf:
            assert zf.namelist() == ["etcpasswd"]

    @pytest.mark.asyncio
    async def test_all_failures_raise(self, packager):
        records = [
            _record("a.png", "https://files.test/slow/a.png"),
            _record("b.png", "https://files.test/missing/b.png"),
        ]
        with pytest.raises(ArchiveError):
            await packager.build(records)

    @pytest.mark.asyncio
    async def test_empty_input_raises(self, packager):
        with pytest.raises(ArchiveError):
            await packager.build([])

    @pytest.mark.asyncio
    async def test_write_to(self, packager, tmp_path):
        result = await packager.build([_record("a.png", "https://files.test/ok/a.png")])
        target = result.write_to(tmp_path / "out")
        assert target.parent == tmp_path / "out"
        assert target.read_bytes() == result.data
