"""Tests for sprintboard.filters."""

import pytest

from sprintboard.filters import EMPTY_FILTERS, fuzzy_includes, matches, merge_filters
from sprintboard.models import FilterState, IssueType, Priority, Status


class TestFuzzyIncludes:
    def test_case_insensitive_and_trimmed(self) -> None:
        assert fuzzy_includes("Fix Login Button", "  login ")

    def test_none_haystack(self) -> None:
        assert not fuzzy_includes(None, "x")


class TestMatches:
    def test_empty_filters_match_everything(self, make_issue) -> None:
        assert matches(make_issue("i1"), EMPTY_FILTERS)

    def test_priority_filter(self, make_issue) -> None:
        filters = FilterState(priorities=[Priority.HIGH])
        issues = [make_issue("1", priority="HIGH"), make_issue("2", priority="LOW")]
        assert [i.id for i in issues if matches(i, filters)] == ["1"]

    def test_labels_any_match(self, make_issue) -> None:
        filters = FilterState(labels=["ui", "api"])
        assert matches(make_issue("i1", labels=["api", "perf"]), filters)
        assert not matches(make_issue("i2", labels=["perf"]), filters)
        assert not matches(make_issue("i3"), filters)

    def test_dimensions_are_anded(self, make_issue) -> None:
        filters = FilterState(assignees=["ana"], work_types=[IssueType.BUG])
        assert matches(make_issue("i1", assignee="ana", type="BUG"), filters)
        assert not matches(make_issue("i2", assignee="ana", type="STORY"), filters)
        assert not matches(make_issue("i3", assignee="bo", type="BUG"), filters)

    def test_status_filter(self, make_issue) -> None:
        filters = FilterState(statuses=[Status.BLOCKED])
        assert matches(make_issue("i1", status="BLOCKED"), filters)
        assert not matches(make_issue("i2"), filters)

    def test_unassigned_excluded_by_assignee_filter(self, make_issue) -> None:
        assert not matches(make_issue("i1"), FilterState(assignees=["ana"]))

    @pytest.mark.parametrize("search", ["LOGIN", "session expired", "abc-1", "  "])
    def test_search_hits_title_description_or_id(self, make_issue, search: str) -> None:
        issue = make_issue("abc-17", title="Login fails", description="When the session expired")
        assert matches(issue, EMPTY_FILTERS, search)

    def test_search_miss(self, make_issue) -> None:
        assert not matches(make_issue("i1", title="Login"), EMPTY_FILTERS, "logout")


class TestMergeFilters:
    def test_replaces_only_given_dimensions(self) -> None:
        current = FilterState(assignees=["ana"], labels=["ui"])
        merged = merge_filters(current, labels=["api"])
        assert merged.assignees == ["ana"]
        assert merged.labels == ["api"]
        assert current.labels == ["ui"]

    def test_unknown_dimension_raises(self) -> None:
        with pytest.raises(ValueError, match="colour"):
            merge_filters(EMPTY_FILTERS, colour=["red"])
