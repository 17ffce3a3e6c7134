"""Column position arithmetic. Positions stay contiguous 1..N after every operation."""

from collections.abc import Iterable, Sequence

from sprintboard.models import Board, BoardColumnDef, BoardType

DEFAULT_COLUMNS: list[BoardColumnDef] = [
    BoardColumnDef(id="TODO", title="To Do", color="#A1C4FD", position=1, status="TODO", status_id=1),
    BoardColumnDef(id="IN_PROGRESS", title="In Progress", color="#FFA500", position=2, status="IN_PROGRESS", status_id=2),
    BoardColumnDef(id="BLOCKED", title="Blocked", color="#EF4444", position=3, status="BLOCKED", status_id=6),
    BoardColumnDef(id="IN_REVIEW", title="In Review", color="#A78BFA", position=4, status="IN_REVIEW", status_id=3),
    BoardColumnDef(id="DONE", title="Done", color="#10B981", position=5, status="DONE", status_id=4),
]


def _sorted(columns: Iterable[BoardColumnDef]) -> list[BoardColumnDef]:
    # sorted() is stable, so equal positions keep their list order
    return sorted(columns, key=lambda c: c.position)


def renumber(columns: Iterable[BoardColumnDef]) -> list[BoardColumnDef]:
    """Order by position and rewrite positions as 1..N."""
    return [
        c if c.position == index else c.model_copy(update={"position": index})
        for index, c in enumerate(_sorted(columns), start=1)
    ]


def add_column(columns: Sequence[BoardColumnDef], new: BoardColumnDef) -> list[BoardColumnDef]:
    """Insert ``new`` at its position, shifting columns at or after it one to the right.

    A position past the end appends the column.
    """
    position = min(new.position, len(columns) + 1)
    shifted = [c.model_copy(update={"position": c.position + 1}) if c.position >= position else c for c in columns]
    inserted = new if new.position == position else new.model_copy(update={"position": position})
    return _sorted([*shifted, inserted])


def remove_column(columns: Sequence[BoardColumnDef], column_id: str) -> list[BoardColumnDef]:
    """Remove a column and close the gap. Unknown ids leave the list unchanged."""
    removed = next((c for c in columns if c.id == column_id), None)
    if removed is None:
        return list(columns)
    return _sorted(
        c.model_copy(update={"position": c.position - 1}) if c.position > removed.position else c
        for c in columns
        if c is not removed
    )


def move_column(columns: Sequence[BoardColumnDef], column_id: str, new_position: int) -> list[BoardColumnDef]:
    """Move a column to ``new_position`` (clamped to 1..N); the others close up around it."""
    moving = next((c for c in columns if c.id == column_id), None)
    if moving is None:
        return list(columns)
    remaining = remove_column(columns, column_id)
    return add_column(remaining, moving.model_copy(update={"position": max(1, new_position)}))


def find_column(columns: Iterable[BoardColumnDef], column_id: str) -> BoardColumnDef | None:
    return next((c for c in columns if c.id == column_id), None)


def column_for_status_id(columns: Iterable[BoardColumnDef], status_id: int) -> BoardColumnDef | None:
    return next((c for c in columns if c.status_id == status_id), None)


def enrich_project_board(board: Board, project_boards: Iterable[Board]) -> Board:
    """Give a project board the union of all project boards' columns, unique by status id.

    The first column seen for a status id wins; the union is ordered by position
    and renumbered. A board whose project has no status-bearing columns is returned as is.
    """
    by_status_id: dict[int, BoardColumnDef] = {}
    for other in project_boards:
        if other.project_id != board.project_id:
            continue
        for column in other.columns:
            if column.status_id is not None and column.status_id not in by_status_id:
                by_status_id[column.status_id] = column

    if not by_status_id:
        return board
    return board.model_copy(update={"columns": renumber(by_status_id.values())})


def enrich_boards(boards: Sequence[Board]) -> list[Board]:
    return [enrich_project_board(b, boards) if b.type is BoardType.PROJECT else b for b in boards]
