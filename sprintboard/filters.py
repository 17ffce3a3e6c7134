"""Filter and search predicate for board issues."""

from sprintboard.models import FilterState, Issue

EMPTY_FILTERS = FilterState()


def fuzzy_includes(haystack: str | None, needle: str) -> bool:
    """Case-insensitive, whitespace-trimmed substring match."""
    if haystack is None:
        return False
    return needle.strip().lower() in haystack.lower()


def matches_search(issue: Issue, search: str) -> bool:
    query = search.strip()
    if not query:
        return True
    return fuzzy_includes(issue.title, query) or fuzzy_includes(issue.description, query) or fuzzy_includes(issue.id, query)


def matches_filters(issue: Issue, filters: FilterState) -> bool:
    if filters.assignees and issue.assignee not in filters.assignees:
        return False
    if filters.work_types and issue.type not in filters.work_types:
        return False
    if filters.priorities and issue.priority not in filters.priorities:
        return False
    if filters.statuses and issue.status not in filters.statuses:
        return False
    # labels: any one match is enough
    if filters.labels and not any(label in filters.labels for label in issue.labels):
        return False
    return True


def matches(issue: Issue, filters: FilterState, search: str = "") -> bool:
    return matches_filters(issue, filters) and matches_search(issue, search)


def merge_filters(current: FilterState, **changes: list) -> FilterState:
    """Return ``current`` with the given dimensions replaced; other dimensions are kept."""
    unknown = set(changes) - set(FilterState.model_fields)
    if unknown:
        raise ValueError(f"Unknown filter dimension(s): {', '.join(sorted(unknown))}")
    return FilterState.model_validate({**current.model_dump(), **changes})
