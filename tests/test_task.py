"""Tests for the transfer task state machine."""
import pytest

from multiup.errors import CANCELLED, TRANSFER_FAILED, CancellationError, ErrorKind, TransferError
from multiup.models import TaskStatus
from multiup.orchestrator.task import InvalidTransition, TransferTask


@pytest.fixture
def task(make_file, make_destination):
    return TransferTask(make_file(), make_destination())


class TestTransferTask:
    def test_initial_state(self, task):
        assert task.status == TaskStatus.PENDING
        assert task.progress == 0
        assert task.remote_url is None
        assert not task.token.cancelled

    def test_success_path(self, task):
        task.start()
        assert task.report_progress(40) is True
        task.succeed("https://files.test/a.png")

        assert task.status == TaskStatus.SUCCEEDED
        assert task.progress == 100
        assert task.remote_url == "https://files.test/a.png"
        assert task.is_terminal

    def test_progress_is_monotonic(self, task):
        task.start()
        task.report_progress(60)
        assert task.report_progress(30) is False
        assert task.progress == 60
        assert task.report_progress(250) is True
        assert task.progress == 100

    def test_progress_ignored_outside_in_progress(self, task):
        assert task.report_progress(50) is False
        task.start()
        task.mark_paused()
        assert task.report_progress(50) is False
        assert task.progress == 0

    def test_failure_resets_progress(self, task):
        task.start()
        task.report_progress(80)
        task.fail(TransferError("AccessDenied: key AKIA..."))

        assert task.status == TaskStatus.FAILED
        assert task.progress == 0
        assert task.error == TRANSFER_FAILED
        assert task.error_kind == ErrorKind.TRANSFER

    def test_pending_can_fail_directly(self, task):
        task.fail(CancellationError())
        assert task.status == TaskStatus.FAILED
        assert task.error == CANCELLED

    def test_terminal_states_are_final(self, task):
        task.start()
        task.succeed("https://files.test/a.png")
        with pytest.raises(InvalidTransition):
            task.fail(TransferError())
        with pytest.raises(InvalidTransition):
            task.start()

    def test_pending_cannot_succeed(self, task):
        with pytest.raises(InvalidTransition):
            task.succeed("https://files.test/a.png")

    def test_pause_overlay(self, task):
        assert task.mark_paused() is False
        task.start()
        assert task.mark_paused() is True
        assert task.status == TaskStatus.PAUSED
        assert task.mark_resumed() is True
        assert task.status == TaskStatus.IN_PROGRESS

    def test_paused_task_can_fail(self, task):
        task.start()
        task.mark_paused()
        task.fail(CancellationError())
        assert task.status == TaskStatus.FAILED
        assert task.error_kind == ErrorKind.CANCELLED

    def test_cancel_signals_own_token(self, make_file, make_destination):
        a = TransferTask(make_file(), make_destination("a"))
        b = TransferTask(make_file(), make_destination("b"))
        a.cancel()
        assert a.token.cancelled
        assert not b.token.cancelled

    def test_view_and_outcome(self, task):
        task.start()
        task.fail(TransferError())
        view = task.view()
        outcome = task.outcome()

        assert view.destination_id == "acc-1"
        assert view.status == TaskStatus.FAILED
        assert view.error == TRANSFER_FAILED
        assert outcome.success is False
        assert outcome.error_kind == "transfer"
