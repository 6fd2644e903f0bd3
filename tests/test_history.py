"""Tests for upload history filtering."""
import pytest

from multiup.services.history import (
    HistoryTotals,
    filter_upload_logs,
    record_status,
    summarize_upload_logs,
)


def _log(name, *results):
    return {
        "file_name": name,
        "destinations": [dest for dest, _ in results],
        "upload_results": [{"destination": dest, "status": status} for dest, status in results],
    }


@pytest.fixture
def records():
    return [
        _log("Holiday.png", ("builtin", "success"), ("acc-1", "success")),
        _log("report.pdf", ("builtin", "success"), ("acc-1", "failed")),
        _log("notes.txt", ("acc-2", "failed")),
    ]


def test_record_status(records):
    assert [record_status(r) for r in records] == ["success", "partial", "failed"]
    assert record_status({"file_name": "x"}) == "failed"


def test_search_is_case_insensitive(records):
    assert [r["file_name"] for r in filter_upload_logs(records, search="holi")] == ["Holiday.png"]


def test_status_filter(records):
    assert [r["file_name"] for r in filter_upload_logs(records, status="partial")] == ["report.pdf"]
    assert [r["file_name"] for r in filter_upload_logs(records, status="failed")] == ["notes.txt"]


def test_destination_filter(records):
    assert [r["file_name"] for r in filter_upload_logs(records, destination="acc-1")] == [
        "Holiday.png",
        "report.pdf",
    ]


def test_filters_combine(records):
    assert filter_upload_logs(records, search="report", status="success") == []
    assert filter_upload_logs(records) == records


def test_unknown_status(records):
    with pytest.raises(ValueError):
        filter_upload_logs(records, status="done")


def test_summarize(records):
    assert summarize_upload_logs(records) == HistoryTotals(files=3, succeeded=3, failed=2)
    assert summarize_upload_logs([]) == HistoryTotals()
