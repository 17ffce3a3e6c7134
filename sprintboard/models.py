"""Shared pydantic models — the records the board engine reads and the transports deliver."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IssueType(str, Enum):
    STORY = "STORY"
    TASK = "TASK"
    BUG = "BUG"
    EPIC = "EPIC"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Status(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"
    BLOCKED = "BLOCKED"


class SprintStatus(str, Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class BoardType(str, Enum):
    TEAM = "TEAM"
    PROJECT = "PROJECT"


class GroupBy(str, Enum):
    NONE = "NONE"
    ASSIGNEE = "ASSIGNEE"
    EPIC = "EPIC"
    SUBTASK = "SUBTASK"


# Backend status ids. 5 ("On Hold") has no status of its own and renders as blocked.
STATUS_BY_ID: dict[int, Status] = {
    1: Status.TODO,
    2: Status.IN_PROGRESS,
    3: Status.IN_REVIEW,
    4: Status.DONE,
    5: Status.BLOCKED,
    6: Status.BLOCKED,
}


def status_for_id(status_id: int | None) -> Status:
    if status_id is None:
        return Status.TODO
    return STATUS_BY_ID.get(status_id, Status.TODO)


def _as_utc(value: datetime | None) -> datetime | None:
    # Backend timestamps arrive without an offset; treat them as UTC so they order against local ones.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    type: IssueType = IssueType.TASK
    priority: Priority = Priority.MEDIUM
    status: Status = Status.TODO
    status_id: int | None = None  # authoritative column-matching key
    key: str | None = None  # PROJ-123 style key from the backend
    assignee: str | None = None
    labels: list[str] = []
    sprint_id: str | None = None
    team_id: str | int | None = None  # kept as delivered; normalized when compared
    epic_id: str | None = None
    parent_id: str | None = None
    story_points: float | None = Field(default=None, ge=0)
    created_at: datetime
    updated_at: datetime
    start_date: datetime | None = None
    due_date: datetime | None = None

    @field_validator("created_at", "updated_at", "start_date", "due_date")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class Sprint(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: SprintStatus = SprintStatus.PLANNED
    team_id: str | int | None = None
    issues: list[Issue] = []  # seeding only, not authoritative afterwards

    @field_validator("start_date", "end_date")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class BoardColumnDef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # status-name derived; never used for matching
    title: str
    color: str = "#A1C4FD"
    position: int = Field(ge=1)
    status: str | None = None
    status_id: int | None = None
    backend_id: str | None = None  # column id on the server, needed for update/delete


class Board(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    project_id: str
    type: BoardType = BoardType.PROJECT
    team_id: str | int | None = None
    columns: list[BoardColumnDef] = []
    include_backlog: bool = False
    include_done: bool = True
    is_default: bool = False


class FilterState(BaseModel):
    """Five independent inclusion lists. An empty list places no constraint on its dimension."""

    model_config = ConfigDict(frozen=True)

    assignees: list[str] = []
    work_types: list[IssueType] = []
    labels: list[str] = []
    statuses: list[Status] = []
    priorities: list[Priority] = []

    def is_empty(self) -> bool:
        return not (self.assignees or self.work_types or self.labels or self.statuses or self.priorities)


class IssueGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    items: list[Issue]


class ColumnBucket(BaseModel):
    """Issues assigned to one board column after scoping, filtering and grouping."""

    model_config = ConfigDict(frozen=True)

    column: BoardColumnDef
    items: list[Issue]
    grouped_by: GroupBy = GroupBy.NONE
    groups: list[IssueGroup] = []


class IssueDraft(BaseModel):
    """Fields accepted when creating an issue locally; unset fields get board defaults."""

    title: str
    description: str = ""
    type: IssueType | None = None
    priority: Priority | None = None
    status: Status | None = None
    status_id: int | None = None
    assignee: str | None = None
    labels: list[str] | None = None
    sprint_id: str | None = None
    team_id: str | int | None = None
    epic_id: str | None = None
    parent_id: str | None = None
    story_points: float | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    due_date: datetime | None = None


class MutationResult(BaseModel):
    """Outcome of a persisted mutation.

    ``previous`` is the record before the local patch; passing the result to
    ``MutationController.rollback`` restores it.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    issue: Issue | None = None
    previous: Issue | None = None
    error: str | None = None
