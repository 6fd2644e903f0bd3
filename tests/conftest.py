"""Shared fixtures for multiup tests."""
import asyncio

import pytest

from multiup.adapters.base import BaseAdapter
from multiup.errors import DestinationUnreachableError, TransferError
from multiup.models import FileItem, S3Destination, TransferResult

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 120
IDRIVE_ENDPOINT = "https://s3.us-west-1.idrivee2.com"


@pytest.fixture
def make_file(tmp_path):
    """Write a file under tmp_path and wrap it as a FileItem."""
    def _make(name="photo.png", data=PNG_BYTES, content_type=None):
        path = tmp_path / name
        path.write_bytes(data)
        return FileItem.from_path(path, content_type)
    return _make


@pytest.fixture
def make_destination():
    def _make(id="acc-1", name=None, endpoint=IDRIVE_ENDPOINT, is_active=True):
        return S3Destination(
            id=id,
            name=name or f"Account {id}",
            endpoint=endpoint,
            bucket="uploads",
            access_key_id="AKIA" + "X" * 16,
            secret_access_key="s" * 40,
            is_active=is_active,
        )
    return _make


class ScriptedAdapter(BaseAdapter):
    """
    Test adapter driven by a behaviour string.

    ok: report 30%, succeed. fail: raise TransferError. unreachable: raise
    DestinationUnreachableError. hang: block until cancelled or timed out.
    hang-once: hang on the first call, succeed afterwards.
    """

    def __init__(self, behaviour="ok", timeout=None, abort_grace=0.1, delay=0.01, log=None):
        super().__init__(timeout=timeout, abort_grace=abort_grace)
        self.behaviour = behaviour
        self.delay = delay
        self.calls = []
        self.log = log if log is not None else []
        self.entered = asyncio.Event()

    async def transfer(self, file, destination, on_progress, cancel_signal):
        self.calls.append(file.name)
        self.log.append(("start", file.name, destination.id))
        self.entered.set()
        try:
            cancel_signal.raise_if_cancelled()
            on_progress(30)

            hang = self.behaviour == "hang" or (self.behaviour == "hang-once" and len(self.calls) == 1)
            if hang:
                await self.run_cancellable(asyncio.sleep(3600), cancel_signal)

            await self.run_cancellable(asyncio.sleep(self.delay), cancel_signal)
            if self.behaviour == "fail":
                raise TransferError("SignatureDoesNotMatch for key AKIA-secret")
            if self.behaviour == "unreachable":
                raise DestinationUnreachableError("connect refused")
            return TransferResult(remote_url=f"https://files.test/{destination.id}/{file.name}")
        finally:
            self.log.append(("end", file.name, destination.id))


class FakeAdapterFactory:
    """Maps destination ids to prepared adapters."""

    def __init__(self, adapters):
        self._adapters = adapters

    def for_destination(self, destination):
        return self._adapters[destination.id]


@pytest.fixture
def scripted():
    return ScriptedAdapter


@pytest.fixture
def fake_factory():
    return FakeAdapterFactory
