"""Terminal client for today's Todoist tasks."""

__version__ = "0.1.0"
