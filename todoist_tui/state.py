"""Application state: task collections, selection, search and the change queue.

``AppState`` is a plain, single-threaded object. ``SharedState`` wraps it in a
lock so the render loop, key handlers and background sync work can share it.
"""

import threading
import time
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterable, Iterator, List, Optional

from todoist_tui.logging_setup import get_logger
from todoist_tui.models import (
    ChangeType,
    PendingChange,
    SyncStatus,
    Task,
    ViewSnapshot,
)
from todoist_tui.settings import settings

logger = get_logger(__name__)


def parse_iso_timestamp(timestamp_str: str) -> datetime:
    """Parse ISO format timestamp string to datetime."""
    return datetime.fromisoformat(timestamp_str.replace("Z", "+00:00"))


def due_local_date(due_date: str) -> Optional[date]:
    """
    Resolve a Todoist ``due.date`` string to a calendar day in local time.

    Args:
        due_date: Either ``YYYY-MM-DD`` or a full ISO timestamp

    Returns:
        The local calendar date, or None if the string cannot be parsed
    """
    try:
        if len(due_date) == 10:
            return datetime.strptime(due_date, "%Y-%m-%d").date()
        if "T" in due_date:
            parsed = parse_iso_timestamp(due_date)
            # Floating times (no offset) are already local wall-clock time
            if parsed.tzinfo is None:
                return parsed.date()
            return parsed.astimezone().date()
    except ValueError:
        return None
    return None


class AppState:
    """In-memory task store and UI state."""

    def __init__(
        self,
        debounce_seconds: Optional[float] = None,
        coalesce_changes: Optional[bool] = None,
    ) -> None:
        """
        Initialize empty state.

        Args:
            debounce_seconds: Minimum age of a pending change before it is pushed
            coalesce_changes: Collapse repeated toggles of one task in the queue
        """
        self.tasks: List[Task] = []
        self.completed_tasks: List[Task] = []
        self.selected_index = 0
        self.pending_changes: List[PendingChange] = []
        self.search_query = ""
        self.is_searching = False
        self.sync_status = SyncStatus.offline()
        # created_at cutoff of the batch a push is currently sending, if any
        self.in_flight_cutoff: Optional[float] = None

        self.debounce_seconds = (
            settings.sync_debounce_seconds if debounce_seconds is None else debounce_seconds
        )
        self.coalesce_changes = (
            settings.coalesce_pending_changes if coalesce_changes is None else coalesce_changes
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_tasks(self, tasks: Iterable[Task]) -> None:
        """Replace the active tasks and reset the selection."""
        self.tasks = list(tasks)
        self.selected_index = 0

    def load_completed_tasks(self, tasks: Iterable[Task]) -> None:
        """Replace the completed tasks, forcing each one to completed."""
        completed = []
        for task in tasks:
            task.is_completed = True
            completed.append(task)
        self.completed_tasks = completed
        self._clamp_selection()

    # ------------------------------------------------------------------
    # Unified view
    # ------------------------------------------------------------------

    def tasks_due_today(self, today: Optional[date] = None) -> List[Task]:
        """Active tasks whose due date falls on the local calendar day."""
        today = today or date.today()
        result = []
        for task in self.tasks:
            if task.due is None:
                continue
            if due_local_date(task.due.date) == today:
                result.append(task)
        return result

    def tasks_upcoming(self, today: Optional[date] = None) -> List[Task]:
        """
        Active tasks due after today, plus tasks with no due date.

        Tasks whose due date cannot be parsed are left out.
        """
        today = today or date.today()
        result = []
        for task in self.tasks:
            if task.due is None:
                result.append(task)
                continue
            day = due_local_date(task.due.date)
            if day is not None and day > today:
                result.append(task)
        return result

    def today_tasks(self, today: Optional[date] = None) -> List[Task]:
        """Tasks due today followed by completed tasks, incomplete ones first."""
        combined = self.tasks_due_today(today) + list(self.completed_tasks)
        # sorted() is stable, so ties keep their relative order
        return sorted(combined, key=lambda task: task.is_completed)

    def unified_today_count(self, today: Optional[date] = None) -> int:
        """Number of tasks in the unified today view."""
        return len(self.today_tasks(today))

    def clamped_index(self, count: int) -> int:
        """Selection limited to a view of ``count`` items."""
        return min(self.selected_index, max(count - 1, 0))

    def selected_task(self) -> Optional[Task]:
        """Task under the cursor in the unified today view."""
        view = self.today_tasks()
        if not view:
            return None
        return view[self.clamped_index(len(view))]

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def move_up(self) -> None:
        # The view can shrink without a load when the local day rolls over
        self._clamp_selection()
        if self.selected_index > 0:
            self.selected_index -= 1

    def move_down(self) -> None:
        self._clamp_selection()
        if self.selected_index + 1 < self.unified_today_count():
            self.selected_index += 1

    def go_to_top(self) -> None:
        self.selected_index = 0

    def go_to_bottom(self) -> None:
        count = self.unified_today_count()
        self.selected_index = count - 1 if count > 0 else 0

    def _clamp_selection(self) -> None:
        count = self.unified_today_count()
        if self.selected_index >= count:
            self.selected_index = self.clamped_index(count)

    # ------------------------------------------------------------------
    # Toggling
    # ------------------------------------------------------------------

    def toggle_task_by_id(self, task_id: str) -> Optional[Task]:
        """
        Flip completion of a task, looking in active then completed tasks.

        Args:
            task_id: Todoist task ID

        Returns:
            The toggled task, or None if the ID is unknown
        """
        for collection in (self.tasks, self.completed_tasks):
            for task in collection:
                if task.id == task_id:
                    task.is_completed = not task.is_completed
                    return task
        return None

    def toggle_selected_task(self) -> Optional[PendingChange]:
        """
        Flip the task at ``selected_index`` in the flat active list and queue it.

        Returns:
            The queued change, or None if nothing is selected
        """
        if not 0 <= self.selected_index < len(self.tasks):
            return None
        task = self.tasks[self.selected_index]
        task.is_completed = not task.is_completed
        change = PendingChange(
            task_id=task.id,
            change_type=ChangeType.for_completed(task.is_completed),
            created_at=time.monotonic(),
        )
        self.pending_changes.append(change)
        return change

    def record_change(self, task: Task, now: Optional[float] = None) -> Optional[PendingChange]:
        """
        Queue the task's current completion state for pushing.

        With coalescing enabled, earlier entries for the same task are
        replaced, and a change that undoes the previous one cancels it.
        Entries already taken by an in-flight push are never coalesced.

        Returns:
            The queued change, or None if it cancelled an earlier one
        """
        change_type = ChangeType.for_completed(task.is_completed)
        if self.coalesce_changes:
            previous = [
                c for c in self.pending_changes if c.task_id == task.id and not self._in_flight(c)
            ]
            if previous:
                self.pending_changes = [
                    c for c in self.pending_changes if all(c is not p for p in previous)
                ]
                if previous[-1].change_type is not change_type:
                    logger.debug("Cancelled pending change", extra={"task_id": task.id})
                    return None

        change = PendingChange(
            task_id=task.id,
            change_type=change_type,
            created_at=time.monotonic() if now is None else now,
        )
        self.pending_changes.append(change)
        return change

    def _in_flight(self, change: PendingChange) -> bool:
        return self.in_flight_cutoff is not None and change.created_at <= self.in_flight_cutoff

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def start_search(self) -> None:
        self.is_searching = True
        self.search_query = ""

    def end_search(self) -> None:
        self.is_searching = False
        self.search_query = ""

    def update_search(self, query: str) -> None:
        self.search_query = query

    def get_filtered_tasks(self) -> List[Task]:
        """Active tasks whose content contains the query, ignoring case."""
        if not self.search_query:
            return list(self.tasks)
        needle = self.search_query.lower()
        return [task for task in self.tasks if needle in task.content.lower()]

    # ------------------------------------------------------------------
    # Sync bookkeeping
    # ------------------------------------------------------------------

    def get_ready_to_sync(self, now: Optional[float] = None) -> List[PendingChange]:
        """Pending changes at least ``debounce_seconds`` old."""
        now = time.monotonic() if now is None else now
        return [
            change
            for change in self.pending_changes
            if now - change.created_at >= self.debounce_seconds
        ]

    def mark_synced(self, ids: Iterable[str], cutoff: Optional[float] = None) -> None:
        """
        Drop pending changes acknowledged by the remote service.

        Args:
            ids: Task IDs whose push succeeded
            cutoff: If given, only changes created at or before it are dropped
        """
        synced = set(ids)
        self.pending_changes = [
            change
            for change in self.pending_changes
            if not (
                change.task_id in synced
                and (cutoff is None or change.created_at <= cutoff)
            )
        ]

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def snapshot(self) -> ViewSnapshot:
        """Copy everything the renderer reads."""
        today = self.today_tasks()
        return ViewSnapshot(
            today_tasks=[task.model_copy(deep=True) for task in today],
            upcoming_tasks=[task.model_copy(deep=True) for task in self.tasks_upcoming()],
            filtered_tasks=(
                [task.model_copy(deep=True) for task in self.get_filtered_tasks()]
                if self.is_searching
                else []
            ),
            selected_index=self.clamped_index(len(today)),
            sync_status=self.sync_status,
            search_query=self.search_query,
            is_searching=self.is_searching,
            active_count=len(self.tasks),
            pending_count=len(self.pending_changes),
        )


class SharedState:
    """An ``AppState`` guarded by a lock, with a non-blocking read for rendering."""

    def __init__(self, state: Optional[AppState] = None) -> None:
        self._state = state or AppState()
        self._lock = threading.Lock()

    @contextmanager
    def locked(self) -> Iterator[AppState]:
        """Hold the lock for the duration of a mutation or consistent read."""
        with self._lock:
            yield self._state

    def try_snapshot(self, fallback: Optional[ViewSnapshot] = None) -> ViewSnapshot:
        """
        Snapshot the state without waiting for the lock.

        Args:
            fallback: Returned (marked stale) when the lock is busy

        Returns:
            A fresh snapshot, or the fallback/empty snapshot on contention
        """
        if not self._lock.acquire(blocking=False):
            stale = fallback or ViewSnapshot()
            return stale.model_copy(update={"is_stale": True})
        try:
            return self._state.snapshot()
        finally:
            self._lock.release()
