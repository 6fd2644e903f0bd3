"""Tests for the JSON record store."""
import pytest

from multiup.models import DESTINATIONS, UPLOAD_LOGS
from multiup.services.local_store import JsonRecordStore


@pytest.fixture
def store(tmp_path):
    return JsonRecordStore(tmp_path / "records.json")


class TestJsonRecordStore:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_date(self, store):
        record = await store.create(DESTINATIONS, {"name": "Backup"})
        assert record["id"]
        assert record["created_date"]
        assert record["name"] == "Backup"

    @pytest.mark.asyncio
    async def test_kinds_are_separate(self, store):
        await store.create(DESTINATIONS, {"name": "Backup"})
        assert await store.list(UPLOAD_LOGS) == []
        assert len(await store.list(DESTINATIONS)) == 1

    @pytest.mark.asyncio
    async def test_list_order_and_limit(self, store):
        for i, date in enumerate(["2024-01-02", "2024-01-03", "2024-01-01"]):
            await store.create(UPLOAD_LOGS, {"file_name": f"f{i}", "created_date": date})

        newest_first = await store.list(UPLOAD_LOGS, "-created_date")
        assert [r["file_name"] for r in newest_first] == ["f1", "f0", "f2"]

        oldest_two = await store.list(UPLOAD_LOGS, "created_date", limit=2)
        assert [r["file_name"] for r in oldest_two] == ["f2", "f0"]

    @pytest.mark.asyncio
    async def test_update(self, store):
        record = await store.create(DESTINATIONS, {"name": "Old", "is_active": True})
        updated = await store.update(DESTINATIONS, record["id"], {"name": "New", "id": "hijack"})
        assert updated["name"] == "New"
        assert updated["id"] == record["id"]

    @pytest.mark.asyncio
    async def test_delete(self, store):
        record = await store.create(DESTINATIONS, {"name": "Gone"})
        await store.delete(DESTINATIONS, record["id"])
        assert await store.list(DESTINATIONS) == []

    @pytest.mark.asyncio
    async def test_missing_records_raise(self, store):
        with pytest.raises(KeyError):
            await store.update(DESTINATIONS, "nope", {})
        with pytest.raises(KeyError):
            await store.delete(DESTINATIONS, "nope")

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "records.json"
        await JsonRecordStore(path).create(DESTINATIONS, {"name": "Kept"})

        reloaded = await JsonRecordStore(path).list(DESTINATIONS)
        assert [r["name"] for r in reloaded] == ["Kept"]

    @pytest.mark.asyncio
    async def test_corrupt_file_starts_fresh(self, tmp_path):
        path = tmp_path / "records.json"
        path.write_text("{not json", encoding="utf-8")
        assert await JsonRecordStore(path).list(DESTINATIONS) == []
