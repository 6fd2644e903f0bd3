"""Upload history queries: filtering and totals over upload log records."""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

# Most recent upload logs considered by a history query
HISTORY_WINDOW = 100

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_PARTIAL = "partial"
STATUSES = (STATUS_SUCCESS, STATUS_FAILED, STATUS_PARTIAL)


@dataclass(frozen=True)
class HistoryTotals:
    """Counts over a set of upload log records."""
    files: int = 0
    succeeded: int = 0
    failed: int = 0


def _results(record: Dict[str, Any]) -> List[Dict[str, Any]]:
    return list(record.get("upload_results") or [])


def record_status(record: Dict[str, Any]) -> str:
    """success when every destination succeeded, failed when none did, else partial."""
    statuses = [r.get("status") for r in _results(record)]
    ok = statuses.count(STATUS_SUCCESS)
    if statuses and ok == len(statuses):
        return STATUS_SUCCESS
    if ok == 0:
        return STATUS_FAILED
    return STATUS_PARTIAL


def filter_upload_logs(
    records: Iterable[Dict[str, Any]],
    search: Optional[str] = None,
    status: Optional[str] = None,
    destination: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Keep records matching every given filter.

    Args:
        search: Case-insensitive substring of the file name
        status: One of success, failed, partial
        destination: Destination id the file was sent to
    """
    if status is not None and status not in STATUSES:
        raise ValueError(f"unknown status filter: {status}")

    needle = (search or "").lower()
    matched = []
    for record in records:
        if needle and needle not in str(record.get("file_name", "")).lower():
            continue
        if status is not None and record_status(record) != status:
            continue
        if destination is not None:
            sent_to = set(record.get("destinations") or [])
            sent_to.update(r.get("destination") for r in _results(record))
            if destination not in sent_to:
                continue
        matched.append(record)
    return matched


def summarize_upload_logs(records: Iterable[Dict[str, Any]]) -> HistoryTotals:
    files = succeeded = failed = 0
    for record in records:
        files += 1
        for result in _results(record):
            if result.get("status") == STATUS_SUCCESS:
                succeeded += 1
            else:
                failed += 1
    return HistoryTotals(files=files, succeeded=succeeded, failed=failed)
