"""Sync coordinator: fetches remote tasks and pushes queued completion edits."""

import asyncio
import time
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Set, TypeVar

from todoist_tui.logging_setup import get_logger
from todoist_tui.models import ChangeType, PendingChange, SyncStatus, Task
from todoist_tui.settings import settings
from todoist_tui.state import SharedState

logger = get_logger(__name__)

T = TypeVar("T")

TIMEOUT_MESSAGE = "Timeout"


class RemoteTasks(Protocol):
    """What the coordinator needs from the remote task service."""

    async def fetch_active_today(self) -> List[Task]: ...

    async def fetch_completed_today(self) -> List[Task]: ...

    async def complete(self, task_id: str) -> None: ...

    async def uncomplete(self, task_id: str) -> None: ...


class SyncCoordinator:
    """Decide when to contact Todoist and fold the outcomes back into state."""

    def __init__(
        self,
        client: RemoteTasks,
        shared: SharedState,
        fetch_timeout: Optional[float] = None,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Initialize the coordinator.

        Args:
            client: Remote task service
            shared: Locked application state
            fetch_timeout: Per-call timeout in seconds (defaults to settings)
            on_change: Called after every state write, e.g. to request a redraw
        """
        self.client = client
        self.shared = shared
        self.fetch_timeout = settings.fetch_timeout if fetch_timeout is None else fetch_timeout
        self.on_change = on_change
        self._background: Set[asyncio.Task] = set()
        # Refreshes still running, and the error the last active fetch left behind
        self._refreshing = 0
        self._fetch_error: Optional[SyncStatus] = None

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _set_status(self, status: SyncStatus) -> None:
        with self.shared.locked() as state:
            state.sync_status = status
        self._notify()

    def _fetch_failed(self, message: str) -> None:
        self._fetch_error = SyncStatus.error(message)
        self._set_status(self._fetch_error)

    async def _bounded(self, call: Callable[[], Awaitable[T]]) -> T:
        return await asyncio.wait_for(call(), timeout=self.fetch_timeout)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def initial_load(self) -> None:
        """
        Populate state at startup.

        An active-task failure sets an error status; a completed-task
        failure is only logged.
        """
        logger.info("Initial task load")
        try:
            tasks = await self.client.fetch_active_today()
        except Exception as e:
            logger.error("Failed to fetch tasks", extra={"error": str(e)}, exc_info=True)
            self._fetch_failed(str(e) or type(e).__name__)
        else:
            self._fetch_error = None
            with self.shared.locked() as state:
                state.load_tasks(tasks)
                state.sync_status = SyncStatus.online()
            self._notify()

        try:
            completed = await self.client.fetch_completed_today()
        except Exception as e:
            logger.warning("Failed to fetch completed tasks", extra={"error": str(e)})
        else:
            with self.shared.locked() as state:
                state.load_completed_tasks(completed)
            self._notify()

    async def refresh(self) -> None:
        """
        Re-fetch active and completed tasks, each under its own timeout.

        The active-task outcome is written before the completed-task outcome.
        A completed-task failure never overwrites a successful status.
        """
        self._refreshing += 1
        try:
            await self._refresh()
        finally:
            self._refreshing -= 1

    async def _refresh(self) -> None:
        self._set_status(SyncStatus.syncing())
        logger.info("Refreshing tasks")

        try:
            tasks = await self._bounded(self.client.fetch_active_today)
        except asyncio.TimeoutError:
            logger.error("Timed out fetching tasks", extra={"timeout": self.fetch_timeout})
            self._fetch_failed(TIMEOUT_MESSAGE)
        except Exception as e:
            logger.error("Failed to refresh tasks", extra={"error": str(e)}, exc_info=True)
            self._fetch_failed(str(e) or type(e).__name__)
        else:
            self._fetch_error = None
            with self.shared.locked() as state:
                state.load_tasks(tasks)
                state.sync_status = SyncStatus.online()
            self._notify()

        try:
            completed = await self._bounded(self.client.fetch_completed_today)
        except asyncio.TimeoutError:
            logger.warning(
                "Timed out fetching completed tasks", extra={"timeout": self.fetch_timeout}
            )
        except Exception as e:
            logger.warning("Failed to refresh completed tasks", extra={"error": str(e)})
        else:
            with self.shared.locked() as state:
                state.load_completed_tasks(completed)
            self._notify()

    def spawn_refresh(self) -> asyncio.Task:
        """Start a refresh in the background without waiting for it."""
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # ------------------------------------------------------------------
    # Pushing
    # ------------------------------------------------------------------

    @staticmethod
    def _latest_per_task(changes: List[PendingChange]) -> Dict[str, PendingChange]:
        latest: Dict[str, PendingChange] = {}
        for change in changes:
            latest[change.task_id] = change
        return latest

    async def push_pending(self, now: Optional[float] = None) -> List[str]:
        """
        Push every pending change past the debounce threshold.

        Only the newest ready change per task is sent. Failed changes stay
        queued for the next tick. A clean push leaves a fetch error or a
        running refresh's status in place.

        Args:
            now: Monotonic time to judge readiness against

        Returns:
            IDs of tasks that were pushed successfully
        """
        now = time.monotonic() if now is None else now
        with self.shared.locked() as state:
            ready = state.get_ready_to_sync(now)
            cutoff = now - state.debounce_seconds
            if ready:
                state.in_flight_cutoff = cutoff
        if not ready:
            return []

        batch = self._latest_per_task(ready)
        logger.info("Pushing pending changes", extra={"count": len(batch)})
        self._set_status(SyncStatus.syncing())

        synced: List[str] = []
        last_error: Optional[str] = None
        try:
            for task_id, change in batch.items():
                call = (
                    self.client.complete
                    if change.change_type is ChangeType.COMPLETE
                    else self.client.uncomplete
                )
                try:
                    await self._bounded(lambda: call(task_id))
                except asyncio.TimeoutError:
                    logger.error("Timed out pushing change", extra={"task_id": task_id})
                    last_error = TIMEOUT_MESSAGE
                except Exception as e:
                    logger.error(
                        "Failed to push change",
                        extra={"task_id": task_id, "change_type": change.change_type.value, "error": str(e)},
                    )
                    last_error = str(e) or type(e).__name__
                else:
                    synced.append(task_id)
        finally:
            with self.shared.locked() as state:
                state.mark_synced(synced, cutoff=cutoff)
                state.in_flight_cutoff = None
                if last_error is not None:
                    state.sync_status = SyncStatus.error(last_error)
                elif state.sync_status == SyncStatus.syncing() and not self._refreshing:
                    state.sync_status = self._fetch_error or SyncStatus.online()
            self._notify()
        logger.info("Push finished", extra={"synced": len(synced), "failed": len(batch) - len(synced)})
        return synced

    async def run_push_loop(self, interval: Optional[float] = None) -> None:
        """Push ready changes every ``interval`` seconds until cancelled."""
        interval = settings.sync_interval_seconds if interval is None else interval
        while True:
            await asyncio.sleep(interval)
            try:
                await self.push_pending()
            except Exception:
                # push_pending reports per-change failures itself
                logger.error("Push tick failed", exc_info=True)

    async def shutdown(self) -> None:
        """Cancel background refreshes still in flight."""
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
