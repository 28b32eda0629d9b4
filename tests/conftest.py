"""Pytest configuration and shared fixtures."""

import os

# Must be set before todoist_tui.settings is imported so retries don't sleep
os.environ.setdefault("RETRY_DELAY", "0")

from datetime import date, timedelta
from typing import Any, Dict, Optional

import pytest

from todoist_tui.models import Due, Task
from todoist_tui.state import AppState, SharedState


def make_task(
    task_id: str,
    due_date: Optional[str] = None,
    is_completed: bool = False,
    content: Optional[str] = None,
    **extra: Any,
) -> Task:
    """Build a Task with an optional due date string."""
    due = Due(date=due_date, string=due_date) if due_date is not None else None
    return Task(
        id=task_id,
        content=content or f"Task {task_id}",
        is_completed=is_completed,
        due=due,
        **extra,
    )


@pytest.fixture
def today() -> date:
    return date.today()


@pytest.fixture
def tomorrow(today) -> date:
    return today + timedelta(days=1)


@pytest.fixture
def app_state() -> AppState:
    """Empty state with the default 30s debounce and no coalescing."""
    return AppState(debounce_seconds=30.0, coalesce_changes=False)


@pytest.fixture
def shared_state(app_state) -> SharedState:
    return SharedState(app_state)


@pytest.fixture
def loaded_state(app_state, today, tomorrow) -> AppState:
    """Three tasks due today, one tomorrow, one undated, one completed."""
    app_state.load_tasks(
        [
            make_task("a", today.isoformat(), content="Write report"),
            make_task("b", tomorrow.isoformat(), content="Call plumber"),
            make_task("c", None, content="Read book"),
            make_task("d", today.isoformat(), content="Water plants"),
        ]
    )
    app_state.load_completed_tasks([make_task("z", today.isoformat(), content="Morning run")])
    return app_state


@pytest.fixture
def mock_todoist_api_response(today) -> Dict[str, Any]:
    """Mock Todoist API task response."""
    return {
        "id": "12345678",
        "content": "Test task",
        "description": "Task description",
        "project_id": "98765",
        "labels": ["work"],
        "priority": 3,
        "due": {
            "date": today.isoformat(),
            "string": "today",
            "timezone": None,
            "is_recurring": False,
        },
        "added_at": "2025-10-01T10:00:00Z",
        "checked": False,
    }
