"""Unit tests for Pydantic models."""

import pytest
from pydantic import ValidationError

from todoist_tui.models import (
    ChangeType,
    Due,
    PendingChange,
    SyncState,
    SyncStatus,
    Task,
)


class TestTaskModels:
    """Test Todoist data models."""

    def test_task_minimal(self):
        """Test creating a task with minimal required fields."""
        task = Task(id="123", content="Test task")
        assert task.id == "123"
        assert task.description == ""  # Default value
        assert task.priority == 1  # Default value
        assert task.is_completed is False
        assert task.due is None

    def test_task_from_api_payload(self, mock_todoist_api_response):
        """Remote field names and unknown fields are handled."""
        task = Task.model_validate(mock_todoist_api_response)
        assert task.id == "12345678"
        assert task.priority == 3
        assert task.due is not None
        assert task.due.string == "today"
        assert not hasattr(task, "project_id")

    def test_checked_alias(self):
        task = Task.model_validate({"id": "1", "content": "x", "checked": True})
        assert task.is_completed is True

    def test_priority_range(self):
        with pytest.raises(ValidationError):
            Task(id="1", content="x", priority=5)
        with pytest.raises(ValidationError):
            Task(id="1", content="x", priority=0)

    def test_due_with_datetime(self):
        due = Due(
            date="2025-10-15T09:00:00Z",
            datetime="2025-10-15T09:00:00Z",
            timezone="Europe/Berlin",
            string="Oct 15 9am",
            is_recurring=True,
        )
        assert due.is_recurring is True
        assert due.timezone == "Europe/Berlin"

    def test_missing_required_fields(self):
        with pytest.raises(ValidationError):
            Task(content="no id")


class TestPendingChange:
    """Test change queue entries."""

    def test_change_type_for_completed(self):
        assert ChangeType.for_completed(True) is ChangeType.COMPLETE
        assert ChangeType.for_completed(False) is ChangeType.UNCOMPLETE

    def test_pending_change(self):
        change = PendingChange(task_id="1", change_type=ChangeType.COMPLETE, created_at=12.5)
        assert change.change_type.value == "complete"


class TestSyncStatus:
    """Test the sync status variant."""

    @pytest.mark.parametrize(
        "status,label",
        [
            (SyncStatus.online(), "Online"),
            (SyncStatus.offline(), "Offline"),
            (SyncStatus.syncing(), "Syncing…"),
            (SyncStatus.error("Timeout"), "ERR: Timeout"),
        ],
    )
    def test_labels(self, status, label):
        assert status.label == label

    def test_error_carries_message(self):
        status = SyncStatus.error("boom")
        assert status.kind is SyncState.ERROR
        assert status.is_error is True
        assert status.message == "boom"

    def test_error_requires_message(self):
        with pytest.raises(ValidationError):
            SyncStatus(kind=SyncState.ERROR)

    def test_non_error_rejects_message(self):
        with pytest.raises(ValidationError):
            SyncStatus(kind=SyncState.ONLINE, message="nope")

    def test_equality(self):
        assert SyncStatus.online() == SyncStatus.online()
        assert SyncStatus.error("a") != SyncStatus.error("b")

    def test_frozen(self):
        status = SyncStatus.online()
        with pytest.raises(ValidationError):
            status.kind = SyncState.OFFLINE
