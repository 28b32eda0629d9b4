"""Pydantic models for Todoist tasks, local changes and sync state."""

from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Todoist Models
# ============================================================================


class Due(BaseModel):
    """Todoist due date information."""

    model_config = ConfigDict(extra="ignore")

    date: str  # YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS[+HH:MM]
    is_recurring: bool = False
    datetime: Optional[str] = None
    timezone: Optional[str] = None
    string: str = ""  # Human-readable date string


class Task(BaseModel):
    """Todoist task object."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    content: str
    description: str = ""
    is_completed: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_completed", "checked"),
    )
    priority: int = Field(default=1, ge=1, le=4)
    due: Optional[Due] = None


# ============================================================================
# Local change queue
# ============================================================================


class ChangeType(str, Enum):
    """Kind of completion edit waiting to be pushed."""

    COMPLETE = "complete"
    UNCOMPLETE = "uncomplete"

    @classmethod
    def for_completed(cls, is_completed: bool) -> "ChangeType":
        """Change type that moves a task into the given completion state."""
        return cls.COMPLETE if is_completed else cls.UNCOMPLETE


class PendingChange(BaseModel):
    """A locally applied toggle not yet confirmed by the remote service."""

    task_id: str
    change_type: ChangeType
    created_at: float  # time.monotonic() seconds


# ============================================================================
# Sync status
# ============================================================================


class SyncState(str, Enum):
    """Sync status discriminator."""

    ONLINE = "online"
    OFFLINE = "offline"
    SYNCING = "syncing"
    ERROR = "error"


class SyncStatus(BaseModel):
    """User-visible connectivity state; ``message`` is only set for errors."""

    model_config = ConfigDict(frozen=True)

    kind: SyncState
    message: Optional[str] = None

    @model_validator(mode="after")
    def _message_only_for_errors(self) -> "SyncStatus":
        if self.kind is SyncState.ERROR and self.message is None:
            raise ValueError("error status requires a message")
        if self.kind is not SyncState.ERROR and self.message is not None:
            raise ValueError(f"{self.kind.value} status does not carry a message")
        return self

    @classmethod
    def online(cls) -> "SyncStatus":
        return cls(kind=SyncState.ONLINE)

    @classmethod
    def offline(cls) -> "SyncStatus":
        return cls(kind=SyncState.OFFLINE)

    @classmethod
    def syncing(cls) -> "SyncStatus":
        return cls(kind=SyncState.SYNCING)

    @classmethod
    def error(cls, message: str) -> "SyncStatus":
        return cls(kind=SyncState.ERROR, message=message)

    @property
    def is_error(self) -> bool:
        return self.kind is SyncState.ERROR

    @property
    def label(self) -> str:
        """Status bar label."""
        if self.kind is SyncState.ONLINE:
            return "Online"
        if self.kind is SyncState.OFFLINE:
            return "Offline"
        if self.kind is SyncState.SYNCING:
            return "Syncing…"
        return f"ERR: {self.message}"


# ============================================================================
# Render snapshot
# ============================================================================


class ViewSnapshot(BaseModel):
    """Read-only copy of the state a single frame needs."""

    model_config = ConfigDict(frozen=True)

    today_tasks: list[Task] = Field(default_factory=list)
    upcoming_tasks: list[Task] = Field(default_factory=list)
    filtered_tasks: list[Task] = Field(default_factory=list)
    selected_index: int = 0
    sync_status: SyncStatus = Field(default_factory=SyncStatus.offline)
    search_query: str = ""
    is_searching: bool = False
    active_count: int = 0
    pending_count: int = 0
    is_stale: bool = False  # True when the state lock was busy for this frame
