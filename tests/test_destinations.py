"""Tests for destination configuration management."""
import pytest

from multiup.errors import ConfigurationError
from multiup.models import BUILTIN_DESTINATION_ID, BuiltinDestination, EngineConfig, S3Destination
from multiup.services.destinations import DestinationService, normalize_endpoint, validate_destination_fields
from multiup.services.local_store import JsonRecordStore
from multiup.models import DEFAULT_ENDPOINT_PATTERNS

VALID = {
    "name": "Backup",
    "endpoint": "s3.us-west-1.idrivee2.com/",
    "bucket_name": "my-bucket",
    "access_key_id": "AKIA" + "X" * 16,
    "secret_access_key": "s" * 40,
}


@pytest.fixture
def service(tmp_path):
    return DestinationService(JsonRecordStore(tmp_path / "records.json"), EngineConfig())


class TestValidation:
    def test_normalize_endpoint(self):
        assert normalize_endpoint(" s3.amazonaws.com/ ") == "https://s3.amazonaws.com"
        assert normalize_endpoint("http://x.idrivee2.com") == "http://x.idrivee2.com"
        assert normalize_endpoint("") == ""

    def test_valid_fields(self):
        cleaned = validate_destination_fields(VALID, DEFAULT_ENDPOINT_PATTERNS)
        assert cleaned["endpoint"] == "https://s3.us-west-1.idrivee2.com"
        assert cleaned["is_active"] is True

    @pytest.mark.parametrize(
        "override, message",
        [
            ({"name": ""}, "required"),
            ({"name": "x"}, "name must be"),
            ({"access_key_id": "short"}, "access key"),
            ({"secret_access_key": "short"}, "secret access key"),
            ({"endpoint": "https://evil.example.com"}, "endpoint"),
            ({"bucket_name": "Bad_Bucket"}, "bucket"),
        ],
    )
    def test_invalid_fields(self, override, message):
        with pytest.raises(ConfigurationError, match=message):
            validate_destination_fields({**VALID, **override}, DEFAULT_ENDPOINT_PATTERNS)

    def test_errors_never_echo_secrets(self):
        with pytest.raises(ConfigurationError) as exc_info:
            validate_destination_fields({**VALID, "endpoint": "https://evil.example.com"}, DEFAULT_ENDPOINT_PATTERNS)
        assert VALID["secret_access_key"] not in str(exc_info.value)


class TestDestinationService:
    @pytest.mark.asyncio
    async def test_add_and_list(self, service):
        added = await service.add(**VALID)

        destinations = await service.list()

        assert isinstance(destinations[0], BuiltinDestination)
        assert isinstance(destinations[1], S3Destination)
        assert destinations[1].id == added.id
        assert destinations[1].endpoint == "https://s3.us-west-1.idrivee2.com"

    @pytest.mark.asyncio
    async def test_add_rejects_invalid(self, service):
        with pytest.raises(ConfigurationError):
            await service.add(**{**VALID, "endpoint": "https://attacker.test"})
        assert await service.list_records() == []

    @pytest.mark.asyncio
    async def test_update(self, service):
        added = await service.add(**VALID)
        updated = await service.update(added.id, name="Renamed")
        assert updated.name == "Renamed"
        assert updated.bucket == "my-bucket"

        with pytest.raises(ConfigurationError):
            await service.update(added.id, bucket_name="NO")

    @pytest.mark.asyncio
    async def test_remove(self, service):
        added = await service.add(**VALID)
        await service.remove(added.id)
        assert await service.list_records() == []

    @pytest.mark.asyncio
    async def test_builtin_cannot_be_removed(self, service):
        with pytest.raises(ConfigurationError):
            await service.remove(BUILTIN_DESTINATION_ID)

    @pytest.mark.asyncio
    async def test_resolve(self, service):
        first = await service.add(**VALID)
        second = await service.add(**{**VALID, "name": "Second"})
        inactive = await service.add(**{**VALID, "name": "Off", "is_active": False})

        resolved = await service.resolve(
            [second.id, BUILTIN_DESTINATION_ID, "unknown", inactive.id, first.id, second.id]
        )

        assert [d.id for d in resolved] == [second.id, BUILTIN_DESTINATION_ID, first.id]

    @pytest.mark.asyncio
    async def test_set_active(self, service):
        added = await service.add(**VALID)
        await service.set_active(added.id, False)
        assert await service.resolve([added.id]) == []

    @pytest.mark.asyncio
    async def test_connection_check_rejects_bad_endpoint(self, service, make_destination):
        assert await service.test_connection(make_destination(endpoint="https://evil.example.com")) is False
