"""Partition visible issues into per-column buckets."""

from collections.abc import Sequence

from sprintboard.models import BoardColumnDef, ColumnBucket, GroupBy, Issue, IssueGroup, Priority

PRIORITY_RANK: dict[Priority, int] = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}

NO_ASSIGNEE = "Unassigned"
NO_EPIC = "No Epic"
NO_PARENT = "No Parent"


def priority_sort_key(issue: Issue) -> tuple:
    return (PRIORITY_RANK.get(issue.priority, len(PRIORITY_RANK)), issue.created_at)


def group_key(issue: Issue, group_by: GroupBy) -> str:
    match group_by:
        case GroupBy.ASSIGNEE:
            return issue.assignee or NO_ASSIGNEE
        case GroupBy.EPIC:
            return issue.epic_id or NO_EPIC
        case GroupBy.SUBTASK:
            return issue.parent_id or NO_PARENT
        case _:
            return ""


def group_issues(items: Sequence[Issue], group_by: GroupBy) -> list[IssueGroup]:
    grouped: dict[str, list[Issue]] = {}
    for issue in items:
        grouped.setdefault(group_key(issue, group_by), []).append(issue)
    return [IssueGroup(key=key, items=sorted(grouped[key], key=priority_sort_key)) for key in sorted(grouped)]


def compute_buckets(
    visible_issues: Sequence[Issue],
    columns: Sequence[BoardColumnDef],
    group_by: GroupBy = GroupBy.NONE,
) -> list[ColumnBucket]:
    """Return one bucket per column, in column position order.

    Issues are matched on ``status_id`` only. Issues whose status id matches no
    column appear in no bucket; a column nobody matches gets an empty bucket.
    """
    buckets = []
    for column in sorted(columns, key=lambda c: c.position):
        items = (
            [i for i in visible_issues if i.status_id == column.status_id] if column.status_id is not None else []
        )
        if group_by is GroupBy.NONE:
            buckets.append(ColumnBucket(column=column, items=sorted(items, key=priority_sort_key)))
            continue
        groups = group_issues(items, group_by)
        buckets.append(
            ColumnBucket(
                column=column,
                items=[issue for group in groups for issue in group.items],
                grouped_by=group_by,
                groups=groups,
            )
        )
    return buckets
