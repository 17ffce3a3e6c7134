"""In-memory board transport. For tests and demos."""

from collections.abc import Iterable

from sprintboard.models import Board, BoardColumnDef, Issue, Sprint
from sprintboard.providers.base import BoardTransport, TransportError


class InMemoryTransport(BoardTransport):
    """BoardTransport backed by dicts.

    ``fail_on`` names operations (method names) that raise TransportError, so
    tests can exercise the failure paths. Every call is appended to ``calls``.
    """

    def __init__(
        self,
        issues: Iterable[Issue] = (),
        sprints: Iterable[Sprint] = (),
        boards: Iterable[Board] = (),
        project_id: str = "p1",
    ) -> None:
        self._project_id = project_id
        self._issues: dict[str, Issue] = {i.id: i for i in issues}
        self._sprints: list[Sprint] = list(sprints)
        self._boards: dict[str, Board] = {b.id: b for b in boards}
        self.fail_on: set[str] = set()
        self.calls: list[tuple] = []

    def _record(self, operation: str, *args: object) -> None:
        self.calls.append((operation, *args))
        if operation in self.fail_on:
            raise TransportError(f"{operation} failed")

    async def fetch_issues_by_project(self, project_id: str) -> list[Issue]:
        self._record("fetch_issues_by_project", project_id)
        return list(self._issues.values()) if project_id == self._project_id else []

    async def fetch_sprints_by_project(self, project_id: str) -> list[Sprint]:
        self._record("fetch_sprints_by_project", project_id)
        return list(self._sprints) if project_id == self._project_id else []

    async def fetch_boards_by_project(self, project_id: str) -> list[Board]:
        self._record("fetch_boards_by_project", project_id)
        return [b for b in self._boards.values() if b.project_id == project_id]

    async def fetch_board_by_id(self, board_id: str) -> Board:
        self._record("fetch_board_by_id", board_id)
        if board_id not in self._boards:
            raise TransportError(f"Board '{board_id}' not found")
        return self._boards[board_id]

    async def persist_issue_status_change(self, issue: Issue, new_status_id: int, project_id: str) -> None:
        self._record("persist_issue_status_change", issue.id, new_status_id, project_id)
        self._issues[issue.id] = issue.model_copy(update={"status_id": new_status_id})

    async def persist_issue_update(self, issue: Issue, project_id: str, patch: dict) -> None:
        self._record("persist_issue_update", issue.id, project_id, patch)
        self._issues[issue.id] = issue.model_copy(update=patch)

    def _replace_columns(self, board_id: str, columns: list[BoardColumnDef]) -> None:
        board = self._boards.get(board_id)
        if board is None:
            raise TransportError(f"Board '{board_id}' not found")
        self._boards[board_id] = board.model_copy(update={"columns": columns})

    async def persist_column_create(self, board_id: str, column: BoardColumnDef) -> None:
        self._record("persist_column_create", board_id, column.id)
        board = self._boards.get(board_id)
        self._replace_columns(board_id, [*(board.columns if board else []), column])

    async def persist_column_update(self, board_id: str, column: BoardColumnDef) -> None:
        self._record("persist_column_update", board_id, column.id, column.position)
        board = self._boards.get(board_id)
        columns = board.columns if board else []
        self._replace_columns(board_id, [column if c.id == column.id else c for c in columns])

    async def persist_column_delete(self, board_id: str, column: BoardColumnDef) -> None:
        self._record("persist_column_delete", board_id, column.id)
        board = self._boards.get(board_id)
        self._replace_columns(board_id, [c for c in (board.columns if board else []) if c.id != column.id])
