"""Full-screen terminal UI with vim-like keybindings."""

import asyncio
from typing import List, Optional

from prompt_toolkit.application import Application
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings, KeyPressEvent
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import ConditionalContainer, HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Frame

from todoist_tui.logging_setup import get_logger
from todoist_tui.models import PendingChange, ViewSnapshot
from todoist_tui.render import KEY_HINTS, StyledLine, section_fragments, status_bar_text
from todoist_tui.settings import settings
from todoist_tui.state import SharedState
from todoist_tui.sync import SyncCoordinator

logger = get_logger(__name__)

STYLE = Style.from_dict(
    {
        "frame.border": "#5f87af",
        "frame.label": "bold",
        "task.completed": "#6c6c6c strike",
        "task.p4": "#ff5f5f bold",
        "task.p3": "#ffaf00",
        "task.p2": "#5fafff",
        "task.selected": "bg:#005faf bold",
        "placeholder": "#6c6c6c italic",
        "status": "reverse",
        "hints": "#8a8a8a",
    }
)


class TaskUI:
    """Interaction loop: key handling, state mutation and redraw requests."""

    def __init__(
        self,
        shared: SharedState,
        coordinator: SyncCoordinator,
        poll_interval: Optional[float] = None,
    ) -> None:
        """
        Initialize the UI.

        Args:
            shared: Locked application state
            coordinator: Sync coordinator used for refreshes and pushes
            poll_interval: Redraw period in seconds (defaults to settings)
        """
        self.shared = shared
        self.coordinator = coordinator
        self.poll_interval = settings.input_poll_interval if poll_interval is None else poll_interval
        self.snapshot = ViewSnapshot()
        self.tick = 0
        self.app: Optional[Application] = None

    # ------------------------------------------------------------------
    # Actions, one lock acquisition per keypress
    # ------------------------------------------------------------------

    def is_searching(self) -> bool:
        with self.shared.locked() as state:
            return state.is_searching

    def move_up(self) -> None:
        with self.shared.locked() as state:
            state.move_up()

    def move_down(self) -> None:
        with self.shared.locked() as state:
            state.move_down()

    def go_to_top(self) -> None:
        with self.shared.locked() as state:
            state.go_to_top()

    def go_to_bottom(self) -> None:
        with self.shared.locked() as state:
            state.go_to_bottom()

    def toggle_selected(self) -> Optional[PendingChange]:
        """Toggle the highlighted task and queue the change for pushing."""
        with self.shared.locked() as state:
            selected = state.selected_task()
        if selected is None:
            return None

        # Resolved by id so a refresh landing in between cannot shift the target
        with self.shared.locked() as state:
            task = state.toggle_task_by_id(selected.id)
            if task is None:
                return None
            change = state.record_change(task)
        logger.info(
            "Toggled task",
            extra={"task_id": selected.id, "is_completed": task.is_completed},
        )
        return change

    def start_search(self) -> None:
        with self.shared.locked() as state:
            state.start_search()

    def end_search(self) -> None:
        with self.shared.locked() as state:
            state.end_search()

    def append_search(self, text: str) -> None:
        with self.shared.locked() as state:
            state.update_search(state.search_query + text)

    def backspace_search(self) -> None:
        with self.shared.locked() as state:
            state.update_search(state.search_query[:-1])

    def refresh(self) -> None:
        self.coordinator.spawn_refresh()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def take_snapshot(self, _app: Optional[Application] = None) -> None:
        """Grab the frame's state without ever waiting on the lock."""
        self.snapshot = self.shared.try_snapshot(fallback=self.snapshot)
        self.tick += 1

    def invalidate(self) -> None:
        if self.app is not None:
            self.app.invalidate()

    def _today_fragments(self) -> List[StyledLine]:
        return section_fragments(
            self.snapshot.today_tasks,
            self.snapshot.selected_index,
            empty_text="Nothing due today",
        )

    def _upcoming_fragments(self) -> List[StyledLine]:
        return section_fragments(self.snapshot.upcoming_tasks, None, empty_text="No upcoming tasks")

    def _search_fragments(self) -> List[StyledLine]:
        return section_fragments(self.snapshot.filtered_tasks, None, empty_text="No matches")

    def _status_fragments(self) -> List[StyledLine]:
        return [("class:status", status_bar_text(self.snapshot, self.tick))]

    def build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()
        searching = Condition(self.is_searching)
        normal = ~searching

        @kb.add("q", filter=normal)
        @kb.add("c-c")
        def _quit(event: KeyPressEvent) -> None:
            event.app.exit()

        @kb.add("j", filter=normal)
        @kb.add("down", filter=normal)
        def _down(event: KeyPressEvent) -> None:
            self.move_down()

        @kb.add("k", filter=normal)
        @kb.add("up", filter=normal)
        def _up(event: KeyPressEvent) -> None:
            self.move_up()

        @kb.add("g", "g", filter=normal)
        def _top(event: KeyPressEvent) -> None:
            self.go_to_top()

        @kb.add("G", filter=normal)
        def _bottom(event: KeyPressEvent) -> None:
            self.go_to_bottom()

        @kb.add(" ", filter=normal)
        def _toggle(event: KeyPressEvent) -> None:
            self.toggle_selected()

        @kb.add("r", filter=normal)
        def _refresh(event: KeyPressEvent) -> None:
            self.refresh()

        @kb.add("/", filter=normal)
        def _search(event: KeyPressEvent) -> None:
            self.start_search()

        @kb.add("escape", filter=searching)
        def _end_search(event: KeyPressEvent) -> None:
            self.end_search()

        @kb.add("backspace", filter=searching)
        def _backspace(event: KeyPressEvent) -> None:
            self.backspace_search()

        @kb.add(Keys.Any, filter=searching)
        def _type(event: KeyPressEvent) -> None:
            if event.data.isprintable():
                self.append_search(event.data)

        return kb

    def build_layout(self) -> Layout:
        today = Frame(
            Window(FormattedTextControl(self._today_fragments), height=Dimension(min=3, preferred=8)),
            title="Today",
        )
        upcoming = Frame(
            Window(FormattedTextControl(self._upcoming_fragments), height=Dimension(min=3, weight=1)),
            title="Upcoming",
        )
        search = ConditionalContainer(
            Frame(
                Window(FormattedTextControl(self._search_fragments), height=Dimension(min=3, weight=1)),
                title="Search",
            ),
            filter=Condition(lambda: self.snapshot.is_searching),
        )
        status = Window(FormattedTextControl(self._status_fragments), height=1, style="class:status")
        hints = Window(FormattedTextControl([("class:hints", KEY_HINTS)]), height=1)
        return Layout(HSplit([today, search, upcoming, status, hints]))

    def build_application(self) -> Application:
        return Application(
            layout=self.build_layout(),
            key_bindings=self.build_key_bindings(),
            style=STYLE,
            full_screen=True,
            refresh_interval=self.poll_interval,
            before_render=self.take_snapshot,
        )

    async def run(self) -> None:
        """
        Run until the user quits.

        The push loop runs alongside the UI and is cancelled on every exit
        path; prompt_toolkit restores the terminal when ``run_async`` unwinds.
        """
        self.app = self.build_application()
        self.coordinator.on_change = self.invalidate
        push_loop = asyncio.get_running_loop().create_task(self.coordinator.run_push_loop())
        try:
            await self.app.run_async()
        finally:
            push_loop.cancel()
            await asyncio.gather(push_loop, return_exceptions=True)
            await self.coordinator.shutdown()
            self.app = None
