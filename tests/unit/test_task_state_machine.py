"""Unit tests for task status transition helpers."""

import pytest

from src.domain.task import ARCHIVE, Task, TaskStatus, parse_status_target
from src.services import task_state_machine


def _task(status: TaskStatus = TaskStatus.IN_PROGRESS, *, archived: bool = False) -> Task:
    return Task(id="1", project_id="1", title="T", status=status, is_archived=archived)


@pytest.mark.unit
class TestStatusChangeFields:
    def test_real_status_clears_archive_flag(self):
        fields = task_state_machine.status_change_fields(task=_task(archived=True), target=TaskStatus.DONE)

        assert fields["status"] == "Done"
        assert fields["is_archived"] is False

    def test_archive_keeps_status(self):
        fields = task_state_machine.status_change_fields(task=_task(), target=ARCHIVE)

        assert "status" not in fields
        assert fields["is_archived"] is True


@pytest.mark.unit
class TestIsNoop:
    def test_same_status(self):
        assert task_state_machine.is_noop(task=_task(TaskStatus.DONE), target=TaskStatus.DONE)

    def test_same_status_on_archived_task_unarchives(self):
        assert not task_state_machine.is_noop(task=_task(TaskStatus.DONE, archived=True), target=TaskStatus.DONE)

    def test_archive_on_archived_task(self):
        assert task_state_machine.is_noop(task=_task(archived=True), target=ARCHIVE)
        assert not task_state_machine.is_noop(task=_task(), target=ARCHIVE)


@pytest.mark.unit
def test_verification_flags():
    opened = task_state_machine.open_verification_fields(verification_id="12")
    closed = task_state_machine.close_verification_fields()

    assert opened["requires_verification"] is True
    assert opened["pending_verification"] == 12
    assert closed["requires_verification"] is False
    assert closed["pending_verification"] is None


@pytest.mark.unit
def test_parse_status_target():
    assert parse_status_target("Archive") == ARCHIVE
    assert parse_status_target("Testing") is TaskStatus.TESTING
    with pytest.raises(ValueError):
        parse_status_target("Blocked")
