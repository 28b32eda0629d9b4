"""Command-line entry point."""

import asyncio
import sys
from typing import Optional

from todoist_tui.logging_setup import get_logger, setup_logging
from todoist_tui.settings import Settings, settings
from todoist_tui.state import AppState, SharedState
from todoist_tui.sync import SyncCoordinator
from todoist_tui.todoist_client import TodoistClient
from todoist_tui.ui import TaskUI

logger = get_logger(__name__)


async def run_app(config: Settings) -> None:
    """
    Build the collaborators, load today's tasks and run the UI.

    Args:
        config: Application settings
    """
    client = TodoistClient(
        api_token=config.todoist_api_token,
        base_url=config.todoist_api_base_url,
        timeout=config.request_timeout,
    )
    shared = SharedState(
        AppState(
            debounce_seconds=config.sync_debounce_seconds,
            coalesce_changes=config.coalesce_pending_changes,
        )
    )
    coordinator = SyncCoordinator(client, shared, fetch_timeout=config.fetch_timeout)
    ui = TaskUI(shared, coordinator, poll_interval=config.input_poll_interval)

    try:
        await coordinator.initial_load()
        await ui.run()
    finally:
        with shared.locked() as state:
            unsent = len(state.pending_changes)
        if unsent:
            logger.warning("Exiting with unsynced changes", extra={"count": unsent})
        await client.close()


def main(config: Optional[Settings] = None) -> int:
    """Run the terminal client; returns the process exit status."""
    config = config or settings
    setup_logging(config.log_file, config.log_level)

    if not config.todoist_api_token:
        print("TODOIST_API_TOKEN is not set (environment or .env file).", file=sys.stderr)
        return 1

    logger.info("Starting todoist-tui")
    try:
        asyncio.run(run_app(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    logger.info("Stopped todoist-tui")
    return 0
