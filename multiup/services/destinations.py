"""
Destination Service - Single Responsibility: manage destination configurations.

Validates S3 account settings before they reach the record store and resolves
selected destination ids into Destination variants for a batch run.
"""
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from ..adapters.base import validate_endpoint
from ..adapters.s3 import S3Adapter
from ..errors import ConfigurationError
from ..models import (
    BUILTIN_DESTINATION_ID,
    DESTINATIONS,
    BuiltinDestination,
    Destination,
    EngineConfig,
    S3Destination,
)
from ..protocols import IRecordStore

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
ACCESS_KEY_MIN_LENGTH = 16
SECRET_KEY_MIN_LENGTH = 32
BUCKET_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{1,61}[a-z0-9]$")


def normalize_endpoint(endpoint: str) -> str:
    """Trim, default the scheme to https and drop trailing slashes."""
    value = (endpoint or "").strip()
    if value and not value.startswith(("http://", "https://")):
        value = f"https://{value}"
    return value.rstrip("/")


def validate_destination_fields(fields: Dict[str, Any], endpoint_patterns: Iterable[str]) -> Dict[str, Any]:
    """
    Validate and normalise an S3 destination form.

    Returns the cleaned record. Raises ConfigurationError naming the first
    invalid field; messages never echo secrets.
    """
    name = (fields.get("name") or "").strip()
    access_key_id = (fields.get("access_key_id") or "").strip()
    secret_access_key = (fields.get("secret_access_key") or "").strip()
    bucket_name = (fields.get("bucket_name") or "").strip()
    endpoint = normalize_endpoint(fields.get("endpoint") or "")

    if not (name and access_key_id and secret_access_key and bucket_name and endpoint):
        raise ConfigurationError("all fields are required")
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        raise ConfigurationError(f"name must be {NAME_MIN_LENGTH}-{NAME_MAX_LENGTH} characters")
    if len(access_key_id) < ACCESS_KEY_MIN_LENGTH:
        raise ConfigurationError("access key id is malformed")
    if len(secret_access_key) < SECRET_KEY_MIN_LENGTH:
        raise ConfigurationError("secret access key is malformed")
    try:
        validate_endpoint(endpoint, endpoint_patterns)
    except ConfigurationError:
        raise ConfigurationError("endpoint is not an allowed storage endpoint") from None
    if not BUCKET_PATTERN.match(bucket_name):
        raise ConfigurationError("bucket name must be lowercase letters, digits or hyphens")

    return {
        "name": name,
        "access_key_id": access_key_id,
        "secret_access_key": secret_access_key,
        "endpoint": endpoint,
        "bucket_name": bucket_name,
        "is_active": bool(fields.get("is_active", True)),
    }


class DestinationService:
    """CRUD over destination configs plus id resolution for batch runs."""

    def __init__(self, store: IRecordStore, config: Optional[EngineConfig] = None):
        self._store = store
        self._config = config or EngineConfig()

    async def list_records(self) -> List[Dict[str, Any]]:
        return await self._store.list(DESTINATIONS, "-created_date")

    async def list(self) -> List[Destination]:
        """All destinations, built-in store first."""
        records = await self.list_records()
        return [BuiltinDestination()] + [S3Destination.from_record(r) for r in records]

    async def add(self, **fields) -> S3Destination:
        record = validate_destination_fields(fields, self._config.endpoint_patterns)
        created = await self._store.create(DESTINATIONS, record)
        logger.info(f"Added destination {created.get('id')} ({record['name']})")
        return S3Destination.from_record(created)

    async def update(self, destination_id: str, **changes) -> S3Destination:
        current = await self._get_record(destination_id)
        merged = validate_destination_fields({**current, **changes}, self._config.endpoint_patterns)
        updated = await self._store.update(DESTINATIONS, destination_id, merged)
        return S3Destination.from_record({**merged, **updated, "id": destination_id})

    async def set_active(self, destination_id: str, active: bool) -> None:
        await self._store.update(DESTINATIONS, destination_id, {"is_active": active})

    async def remove(self, destination_id: str) -> None:
        if destination_id == BUILTIN_DESTINATION_ID:
            raise ConfigurationError("the built-in store cannot be removed")
        await self._store.delete(DESTINATIONS, destination_id)
        logger.info(f"Removed destination {destination_id}")

    async def resolve(self, destination_ids: Iterable[str]) -> List[Destination]:
        """
        Map selected ids to destinations, keeping selection order.

        Unknown and inactive accounts are dropped with a warning.
        """
        by_id = {str(r.get("id")): r for r in await self.list_records()}
        resolved: List[Destination] = []
        seen = set()
        for destination_id in destination_ids:
            if destination_id in seen:
                continue
            seen.add(destination_id)

            if destination_id == BUILTIN_DESTINATION_ID:
                resolved.append(BuiltinDestination())
                continue

            record = by_id.get(destination_id)
            if record is None:
                logger.warning(f"Unknown destination: {destination_id}")
                continue
            destination = S3Destination.from_record(record)
            if not destination.is_active:
                logger.warning(f"Destination {destination_id} is inactive, skipping")
                continue
            resolved.append(destination)
        return resolved

    async def test_connection(self, destination: S3Destination) -> bool:
        """Check credentials against the endpoint. Never raises."""
        try:
            adapter = S3Adapter(destination, endpoint_patterns=self._config.endpoint_patterns)
        except ConfigurationError:
            return False
        return await adapter.check_connection()

    async def _get_record(self, destination_id: str) -> Dict[str, Any]:
        for record in await self.list_records():
            if str(record.get("id")) == destination_id:
                return record
        raise ConfigurationError(f"unknown destination: {destination_id}")
