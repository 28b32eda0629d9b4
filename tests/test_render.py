"""Tests for task and status bar formatting."""

import pytest

from tests.conftest import make_task
from todoist_tui.models import SyncStatus, ViewSnapshot
from todoist_tui.render import (
    DESCRIPTION_LIMIT,
    SPINNER_FRAMES,
    format_task_line,
    section_fragments,
    status_bar_text,
    strip_markup,
)


class TestStripMarkup:
    """Test light markdown removal."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("**bold** and *italic*", "bold and italic"),
            ("__under__ _score_", "under score"),
            ("[Docs](https://example.com/a_b)", "Docs (https://example.com/a_b)"),
            ("see [**here**](http://x.y) now", "see here (http://x.y) now"),
            ("", ""),
            ("plain", "plain"),
        ],
    )
    def test_strip(self, text, expected):
        assert strip_markup(text) == expected


class TestFormatTaskLine:
    """Test single task rendering."""

    def test_active_task(self):
        assert format_task_line(make_task("1", content="Buy milk")) == "[ ] Buy milk"

    def test_completed_with_description(self):
        task = make_task("1", content="Buy milk", is_completed=True, description="2 *litres*")
        assert format_task_line(task) == "[✓] Buy milk - 2 litres"

    def test_long_description_truncated(self):
        task = make_task("1", content="x", description="d" * 150)
        line = format_task_line(task)
        assert line == f"[ ] x - {'d' * DESCRIPTION_LIMIT}..."


class TestSectionFragments:
    """Test pane fragments."""

    def test_empty_placeholder(self):
        fragments = section_fragments([], None, empty_text="Nothing due today")
        assert fragments == [("class:placeholder", "  Nothing due today\n")]

    def test_selected_row_highlighted(self):
        tasks = [make_task("1", content="one"), make_task("2", content="two", priority=4)]

        fragments = section_fragments(tasks, 1)

        assert fragments[0] == ("class:task.p1", "  [ ] one\n")
        assert fragments[1] == ("[SetCursorPosition]", "")
        assert fragments[2] == ("class:task.p4 class:task.selected", "> [ ] two\n")

    def test_completed_style(self):
        fragments = section_fragments([make_task("1", is_completed=True)], None)
        assert fragments[0][0] == "class:task.completed"


class TestStatusBar:
    """Test the status line."""

    def test_online(self):
        snapshot = ViewSnapshot(sync_status=SyncStatus.online(), active_count=3)
        assert status_bar_text(snapshot) == "Status: Online | Tasks: 3"

    def test_error_and_search(self):
        snapshot = ViewSnapshot(
            sync_status=SyncStatus.error("Timeout"),
            is_searching=True,
            search_query="milk",
            active_count=0,
        )
        assert status_bar_text(snapshot) == "Status: ERR: Timeout | Search: milk | Tasks: 0"

    def test_syncing_spinner_and_pending(self):
        snapshot = ViewSnapshot(sync_status=SyncStatus.syncing(), active_count=2, pending_count=1)
        text = status_bar_text(snapshot, tick=1)
        assert text == f"Status: {SPINNER_FRAMES[1]} Syncing… | Tasks: 2 | Pending: 1"

    def test_offline_default(self):
        assert status_bar_text(ViewSnapshot()) == "Status: Offline | Tasks: 0"
