"""
JsonRecordStore - Local record store kept in a JSON file.

Used when no record store API is configured. Holds destination configs,
upload logs and preferences keyed by entity kind.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..protocols import IRecordStore

logger = logging.getLogger(__name__)

# Default store location
DEFAULT_STORE_DIR = Path.home() / ".cache" / "multiup"
DEFAULT_STORE_FILE = "records.json"


class JsonRecordStore(IRecordStore):
    """
    Local record store.

    Records are dicts with an ``id`` and a ``created_date`` assigned on
    create. The file is read on first use and rewritten after every change.
    """

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize record store.

        Args:
            path: JSON file (default: ~/.cache/multiup/records.json)
        """
        self._path = Path(path) if path else DEFAULT_STORE_DIR / DEFAULT_STORE_FILE
        self._data: Optional[Dict[str, List[Dict[str, Any]]]] = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        if self._data is not None:
            return self._data
        try:
            if self._path.exists():
                with open(self._path, "r", encoding="utf-8") as f:
                    self._data = json.load(f)
                logger.debug("JsonRecordStore: Loaded %s", self._path)
            else:
                self._data = {}
        except json.JSONDecodeError as e:
            logger.warning("JsonRecordStore: Failed to parse %s: %s - starting fresh", self._path, e)
            self._data = {}
        return self._data

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2)
        tmp_path.replace(self._path)

    def _records(self, kind: str) -> List[Dict[str, Any]]:
        return self._load().setdefault(kind, [])

    def _find(self, kind: str, record_id: str) -> Dict[str, Any]:
        for record in self._records(kind):
            if record.get("id") == record_id:
                return record
        raise KeyError(f"{kind}/{record_id} not found")

    async def create(self, kind: str, entry: Dict[str, Any]) -> Dict[str, Any]:
        record = dict(entry)
        record.setdefault("id", uuid.uuid4().hex)
        record.setdefault("created_date", datetime.now(timezone.utc).isoformat())
        self._records(kind).append(record)
        self._save()
        return dict(record)

    async def list(
        self, kind: str, order_key: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        records = [dict(r) for r in self._records(kind)]
        if order_key:
            reverse = order_key.startswith("-")
            key = order_key.lstrip("-")
            records.sort(key=lambda r: str(r.get(key, "")), reverse=reverse)
        if limit is not None:
            records = records[:limit]
        return records

    async def update(self, kind: str, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        record = self._find(kind, record_id)
        record.update({k: v for k, v in patch.items() if k != "id"})
        self._save()
        return dict(record)

    async def delete(self, kind: str, record_id: str) -> None:
        records = self._records(kind)
        remaining = [r for r in records if r.get("id") != record_id]
        if len(remaining) == len(records):
            raise KeyError(f"{kind}/{record_id} not found")
        self._load()[kind] = remaining
        self._save()
