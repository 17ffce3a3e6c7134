"""Shared test fixtures."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from sprintboard.columns import DEFAULT_COLUMNS
from sprintboard.models import Board, BoardColumnDef, BoardType, Issue, Sprint, SprintStatus
from sprintboard.providers.memory import InMemoryTransport
from sprintboard.store import BoardStore

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def issue(id: str, minute: int = 0, **fields) -> Issue:
    """Issue created ``minute`` minutes after T0, TODO (status id 1) unless overridden."""
    created = T0 + timedelta(minutes=minute)
    defaults = {"title": f"Issue {id}", "status_id": 1, "created_at": created, "updated_at": created}
    return Issue(id=id, **{**defaults, **fields})


@pytest.fixture
def make_issue() -> Callable[..., Issue]:
    return issue


@pytest.fixture
def three_columns() -> list[BoardColumnDef]:
    return [
        BoardColumnDef(id="TODO", title="To Do", position=1, status="TODO", status_id=1),
        BoardColumnDef(id="IN_PROGRESS", title="In Progress", position=2, status="IN_PROGRESS", status_id=2),
        BoardColumnDef(id="DONE", title="Done", position=3, status="DONE", status_id=4),
    ]


@pytest.fixture
def team_board(three_columns: list[BoardColumnDef]) -> Board:
    # numeric team id, as the backend sends it on boards
    return Board(id="b-team", name="Platform", project_id="p1", type=BoardType.TEAM, team_id=5, columns=three_columns)


@pytest.fixture
def project_board() -> Board:
    return Board(id="b-proj", name="All work", project_id="p1", type=BoardType.PROJECT, columns=list(DEFAULT_COLUMNS))


@pytest.fixture
def sprints() -> list[Sprint]:
    return [
        Sprint(id="s1", name="Sprint 1", status=SprintStatus.ACTIVE, team_id="5"),
        Sprint(id="s2", name="Sprint 2", status=SprintStatus.PLANNED, team_id="5"),
        Sprint(id="s9", name="Other team", status=SprintStatus.ACTIVE, team_id="9"),
    ]


@pytest.fixture
def project_issues() -> list[Issue]:
    return [
        issue("i1", 1, team_id="5", sprint_id="s1", priority="HIGH"),
        issue("i2", 2, sprint_id="s1", status="IN_PROGRESS", status_id=2),
        issue("i3", 3, team_id="5", sprint_id="s2"),
        issue("i4", 4, team_id="9", sprint_id="s9"),
        issue("i5", 5),
    ]


@pytest.fixture
def transport(
    project_issues: list[Issue], sprints: list[Sprint], team_board: Board, project_board: Board
) -> InMemoryTransport:
    return InMemoryTransport(
        issues=project_issues, sprints=sprints, boards=[project_board, team_board], project_id="p1"
    )


@pytest.fixture
def store(transport: InMemoryTransport) -> BoardStore:
    return BoardStore(transport)
