"""Tests for sprintboard.models — record defaults, validation and status ids."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from sprintboard.models import (
    BoardColumnDef,
    FilterState,
    Issue,
    IssueType,
    Priority,
    Status,
    status_for_id,
)


class TestIssue:
    def test_defaults(self, make_issue) -> None:
        issue = make_issue("i1")
        assert issue.type is IssueType.TASK
        assert issue.priority is Priority.MEDIUM
        assert issue.status is Status.TODO
        assert issue.labels == []
        assert issue.description == ""

    def test_frozen(self, make_issue) -> None:
        issue = make_issue("i1")
        with pytest.raises(ValidationError):
            issue.title = "changed"  # type: ignore[misc]

    def test_negative_story_points_rejected(self, make_issue) -> None:
        with pytest.raises(ValidationError):
            make_issue("i1", story_points=-1)

    def test_naive_timestamps_become_utc(self) -> None:
        issue = Issue(id="i1", title="t", created_at=datetime(2024, 1, 1), updated_at="2024-01-02T10:00:00")
        assert issue.created_at.tzinfo is timezone.utc
        assert issue.updated_at == datetime(2024, 1, 2, 10, tzinfo=timezone.utc)

    def test_team_id_kept_as_delivered(self, make_issue) -> None:
        assert make_issue("i1", team_id=5).team_id == 5
        assert make_issue("i2", team_id="5").team_id == "5"


class TestBoardColumnDef:
    def test_position_is_one_based(self) -> None:
        with pytest.raises(ValidationError):
            BoardColumnDef(id="TODO", title="To Do", position=0)


class TestFilterState:
    def test_empty_by_default(self) -> None:
        assert FilterState().is_empty()

    def test_not_empty_with_any_dimension(self) -> None:
        assert not FilterState(labels=["ui"]).is_empty()

    def test_values_coerced_to_enums(self) -> None:
        filters = FilterState(priorities=["HIGH"], work_types=["BUG"])
        assert filters.priorities == [Priority.HIGH]
        assert filters.work_types == [IssueType.BUG]


class TestStatusForId:
    @pytest.mark.parametrize(
        ("status_id", "expected"),
        [
            (1, Status.TODO),
            (2, Status.IN_PROGRESS),
            (3, Status.IN_REVIEW),
            (4, Status.DONE),
            (5, Status.BLOCKED),
            (6, Status.BLOCKED),
        ],
    )
    def test_known_ids(self, status_id: int, expected: Status) -> None:
        assert status_for_id(status_id) is expected

    def test_unknown_and_missing_fall_back_to_todo(self) -> None:
        assert status_for_id(99) is Status.TODO
        assert status_for_id(None) is Status.TODO
