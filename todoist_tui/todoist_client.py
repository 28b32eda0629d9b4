"""Todoist API client for fetching today's tasks and toggling completion."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from todoist_tui.logging_setup import get_logger
from todoist_tui.models import Task
from todoist_tui.settings import settings

logger = get_logger(__name__)

_retry_policy = retry(
    retry=retry_if_exception_type(httpx.TransportError),
    stop=stop_after_attempt(settings.max_retries),
    wait=wait_exponential(multiplier=settings.retry_delay, max=10),
    reraise=True,
)


def local_day_bounds(day: date) -> tuple[str, str]:
    """
    Return the start and end of a local calendar day as UTC ISO strings.

    Args:
        day: Local calendar date

    Returns:
        (since, until) timestamps
    """
    start = datetime.combine(day, time.min).astimezone()
    end = start + timedelta(days=1)
    fmt = "%Y-%m-%dT%H:%M:%SZ"
    return (
        start.astimezone(timezone.utc).strftime(fmt),
        end.astimezone(timezone.utc).strftime(fmt),
    )


class TodoistClient:
    """Async HTTP client for the Todoist API v1."""

    def __init__(
        self,
        api_token: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize Todoist client.

        Args:
            api_token: Todoist API token
            base_url: API base URL (defaults to settings)
            timeout: HTTP timeout in seconds (defaults to settings)
        """
        self.api_token = api_token
        self.base_url = base_url or settings.todoist_api_base_url
        self.headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }
        self._client = httpx.AsyncClient(timeout=timeout or settings.request_timeout)

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    @_retry_policy
    async def _get(self, endpoint: str, params: Optional[Dict] = None) -> Union[Dict, List]:
        """
        Make GET request to Todoist API with retry logic.

        Args:
            endpoint: API endpoint (e.g., "/tasks")
            params: Query parameters

        Returns:
            JSON response data

        Raises:
            httpx.HTTPError: On request failure
        """
        url = f"{self.base_url}{endpoint}"
        logger.debug("Todoist GET request", extra={"endpoint": endpoint, "params": params})
        response = await self._client.get(url, headers=self.headers, params=params)
        logger.debug(
            "Todoist response",
            extra={"endpoint": endpoint, "status_code": response.status_code},
        )
        if response.is_error:
            logger.error(
                "Todoist request failed",
                extra={"endpoint": endpoint, "status_code": response.status_code, "body": response.text},
            )
        response.raise_for_status()
        return response.json()

    @_retry_policy
    async def _post(self, endpoint: str, data: Optional[Dict[str, Any]] = None) -> Optional[Dict]:
        """
        Make POST request to Todoist API with retry logic.

        Args:
            endpoint: API endpoint (e.g., "/tasks/123/close")
            data: JSON data to send

        Returns:
            JSON response data, or None for an empty body
        """
        url = f"{self.base_url}{endpoint}"
        logger.debug("Todoist POST request", extra={"endpoint": endpoint})
        response = await self._client.post(url, headers=self.headers, json=data)
        if response.is_error:
            logger.error(
                "Todoist request failed",
                extra={"endpoint": endpoint, "status_code": response.status_code, "body": response.text},
            )
        response.raise_for_status()
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def _get_paginated(
        self, endpoint: str, params: Dict[str, Any], results_key: str
    ) -> List[Dict[str, Any]]:
        """Collect every page of a cursor-paginated endpoint."""
        items: List[Dict[str, Any]] = []
        query = dict(params)
        while True:
            data = await self._get(endpoint, params=query)
            if isinstance(data, list):
                items.extend(data)
                return items
            items.extend(data.get(results_key, []))
            cursor = data.get("next_cursor")
            if not cursor:
                return items
            query["cursor"] = cursor

    async def fetch_active_today(self, today: Optional[date] = None) -> List[Task]:
        """
        Fetch active tasks due today.

        Returns:
            List of Task objects
        """
        today = today or date.today()
        params = {"filter": f"due date: {today.isoformat()}"}
        logger.info("Fetching today's tasks", extra={"date": today.isoformat()})
        data = await self._get_paginated("/tasks", params, "results")
        tasks = [Task.model_validate(task) for task in data]
        logger.info("Retrieved tasks", extra={"count": len(tasks)})
        return tasks

    async def fetch_completed_today(self, today: Optional[date] = None) -> List[Task]:
        """
        Fetch tasks completed during the local day.

        Returns:
            List of Task objects
        """
        since, until = local_day_bounds(today or date.today())
        logger.info("Fetching completed tasks", extra={"since": since, "until": until})
        data = await self._get_paginated(
            "/tasks/completed/by_completion_date",
            {"since": since, "until": until},
            "items",
        )
        tasks = [Task.model_validate(task) for task in data]
        logger.info("Retrieved completed tasks", extra={"count": len(tasks)})
        return tasks

    async def complete(self, task_id: str) -> None:
        """
        Mark a task as completed.

        Args:
            task_id: Todoist task ID
        """
        logger.info("Completing Todoist task", extra={"task_id": task_id})
        await self._post(f"/tasks/{task_id}/close")

    async def uncomplete(self, task_id: str) -> None:
        """
        Reopen a completed task.

        Args:
            task_id: Todoist task ID
        """
        logger.info("Reopening Todoist task", extra={"task_id": task_id})
        await self._post(f"/tasks/{task_id}/reopen")
