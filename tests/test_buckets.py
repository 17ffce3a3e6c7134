"""Tests for sprintboard.buckets."""

from sprintboard.buckets import NO_ASSIGNEE, NO_EPIC, NO_PARENT, compute_buckets
from sprintboard.models import BoardColumnDef, GroupBy


def _sizes(buckets) -> list[int]:
    return [len(b.items) for b in buckets]


class TestComputeBuckets:
    def test_partition_by_status_id(self, make_issue, three_columns: list[BoardColumnDef]) -> None:
        issues = [
            make_issue("A", status_id=1),
            make_issue("B", status_id=2),
            make_issue("C", status_id=4),
            make_issue("D", status_id=9),
        ]
        buckets = compute_buckets(issues, three_columns)
        assert _sizes(buckets) == [1, 1, 1]
        assert "D" not in {i.id for b in buckets for i in b.items}

    def test_column_order_follows_position(self, make_issue, three_columns: list[BoardColumnDef]) -> None:
        shuffled = [three_columns[2], three_columns[0], three_columns[1]]
        assert [b.column.position for b in compute_buckets([], shuffled)] == [1, 2, 3]

    def test_legacy_id_never_used_for_matching(self, make_issue) -> None:
        column = BoardColumnDef(id="TODO", title="To Do", position=1, status="TODO", status_id=None)
        buckets = compute_buckets([make_issue("i1", status="TODO", status_id=None)], [column])
        assert buckets[0].items == []

    def test_priority_then_created(self, make_issue, three_columns: list[BoardColumnDef]) -> None:
        issues = [
            make_issue("low", 0, priority="LOW"),
            make_issue("crit", 5, priority="CRITICAL"),
            make_issue("high-late", 4, priority="HIGH"),
            make_issue("high-early", 1, priority="HIGH"),
        ]
        todo = compute_buckets(issues, three_columns)[0]
        assert [i.id for i in todo.items] == ["crit", "high-early", "high-late", "low"]
        assert todo.grouped_by is GroupBy.NONE
        assert todo.groups == []

    def test_partition_complete_without_duplicates(self, make_issue, three_columns: list[BoardColumnDef]) -> None:
        issues = [make_issue(f"i{n}", n, status_id=(1, 2, 4)[n % 3]) for n in range(9)]
        buckets = compute_buckets(issues, three_columns)
        ids = [i.id for b in buckets for i in b.items]
        assert sorted(ids) == sorted(i.id for i in issues)
        assert len(ids) == len(set(ids))

    def test_idempotent(self, make_issue, three_columns: list[BoardColumnDef]) -> None:
        issues = [make_issue("a", 1), make_issue("b", 2, status_id=2)]
        assert compute_buckets(issues, three_columns, GroupBy.ASSIGNEE) == compute_buckets(
            issues, three_columns, GroupBy.ASSIGNEE
        )


class TestGrouping:
    def test_group_by_assignee(self, make_issue, three_columns: list[BoardColumnDef]) -> None:
        issues = [
            make_issue("z1", 1, assignee="zoe"),
            make_issue("n1", 2),
            make_issue("a1", 3, assignee="ana", priority="LOW"),
            make_issue("a2", 4, assignee="ana", priority="CRITICAL"),
        ]
        todo = compute_buckets(issues, three_columns, GroupBy.ASSIGNEE)[0]
        assert [g.key for g in todo.groups] == sorted(["ana", NO_ASSIGNEE, "zoe"])
        ana = next(g for g in todo.groups if g.key == "ana")
        assert [i.id for i in ana.items] == ["a2", "a1"]
        assert [i.id for i in todo.items] == [i.id for g in todo.groups for i in g.items]
        assert todo.grouped_by is GroupBy.ASSIGNEE

    def test_group_by_epic_sentinel(self, make_issue, three_columns: list[BoardColumnDef]) -> None:
        issues = [make_issue("e1", epic_id="EP-1"), make_issue("e2")]
        todo = compute_buckets(issues, three_columns, GroupBy.EPIC)[0]
        assert [g.key for g in todo.groups] == ["EP-1", NO_EPIC]

    def test_group_by_parent(self, make_issue, three_columns: list[BoardColumnDef]) -> None:
        issues = [make_issue("c1", parent_id="P-2"), make_issue("c2", parent_id="P-1"), make_issue("c3")]
        todo = compute_buckets(issues, three_columns, GroupBy.SUBTASK)[0]
        assert [g.key for g in todo.groups] == [NO_PARENT, "P-1", "P-2"]

    def test_grouping_keeps_visible_set(self, make_issue, three_columns: list[BoardColumnDef]) -> None:
        issues = [make_issue("a", assignee="x"), make_issue("b", status_id=2)]
        flat = compute_buckets(issues, three_columns)
        grouped = compute_buckets(issues, three_columns, GroupBy.ASSIGNEE)
        assert _sizes(flat) == _sizes(grouped) == [1, 1, 0]
