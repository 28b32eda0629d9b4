"""Text formatting for the task panes and the status bar."""

import re
from typing import List, Optional, Tuple

from todoist_tui.models import SyncState, Task, ViewSnapshot

DESCRIPTION_LIMIT = 100
SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
KEY_HINTS = "q:quit j/k:move gg/G:top/bottom space:toggle r:refresh /:search"

_LINK_RE = re.compile(r"\[([^\]]*)\]\(([^)]*)\)")
_EMPHASIS_RE = re.compile(r"\*\*|\*|__|_")

StyledLine = Tuple[str, str]


def strip_markup(text: str) -> str:
    """
    Remove light Todoist markdown from a string.

    Bold/italic markers are dropped and ``[label](url)`` becomes ``label (url)``.
    """
    if not text:
        return ""
    # Links first so underscores inside URLs survive
    parts = []
    last = 0
    for match in _LINK_RE.finditer(text):
        parts.append(_EMPHASIS_RE.sub("", text[last : match.start()]))
        parts.append(f"{_EMPHASIS_RE.sub('', match.group(1))} ({match.group(2)})")
        last = match.end()
    parts.append(_EMPHASIS_RE.sub("", text[last:]))
    return "".join(parts)


def format_task_line(task: Task) -> str:
    """Render one task as ``[✓] content - description``."""
    symbol = "✓" if task.is_completed else " "
    content = strip_markup(task.content)
    description = strip_markup(task.description)
    if len(description) > DESCRIPTION_LIMIT:
        description = f"{description[:DESCRIPTION_LIMIT]}..."
    suffix = f" - {description}" if description else ""
    return f"[{symbol}] {content}{suffix}"


def task_style(task: Task, selected: bool) -> str:
    """prompt_toolkit style string for a task row."""
    classes = []
    if task.is_completed:
        classes.append("class:task.completed")
    else:
        classes.append(f"class:task.p{task.priority}")
    if selected:
        classes.append("class:task.selected")
    return " ".join(classes)


def section_fragments(
    tasks: List[Task],
    selected: Optional[int],
    empty_text: str = "Nothing here",
) -> List[StyledLine]:
    """
    Build formatted text fragments for a task pane.

    Args:
        tasks: Tasks in display order
        selected: Index to highlight within this pane, if any
        empty_text: Placeholder shown for an empty pane
    """
    if not tasks:
        return [("class:placeholder", f"  {empty_text}\n")]
    fragments: List[StyledLine] = []
    for index, task in enumerate(tasks):
        is_selected = index == selected
        if is_selected:
            # Keeps the highlighted row scrolled into view
            fragments.append(("[SetCursorPosition]", ""))
        prefix = "> " if is_selected else "  "
        fragments.append((task_style(task, is_selected), f"{prefix}{format_task_line(task)}\n"))
    return fragments


def spinner_frame(tick: int) -> str:
    return SPINNER_FRAMES[tick % len(SPINNER_FRAMES)]


def status_bar_text(snapshot: ViewSnapshot, tick: int = 0) -> str:
    """Status line: sync state, search query, task count and pending edits."""
    label = snapshot.sync_status.label
    if snapshot.sync_status.kind is SyncState.SYNCING:
        label = f"{spinner_frame(tick)} {label}"
    search = f" | Search: {snapshot.search_query}" if snapshot.is_searching else ""
    pending = f" | Pending: {snapshot.pending_count}" if snapshot.pending_count else ""
    return f"Status: {label}{search} | Tasks: {snapshot.active_count}{pending}"
