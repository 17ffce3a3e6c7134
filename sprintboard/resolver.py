"""Decide which sprint is current for a board."""

from collections.abc import Iterable

from sprintboard.models import Board, Sprint, SprintStatus


def normalize_team_id(value: str | int | float | None) -> str | None:
    """Return a comparable string form of a team id.

    The backend sends numeric team ids on boards and string ids on sprints and
    issues, so ``5``, ``5.0`` and ``" 5 "`` must all compare equal.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    text = str(value).strip()
    return text or None


def same_team(left: str | int | None, right: str | int | None) -> bool:
    normalized = normalize_team_id(left)
    return normalized is not None and normalized == normalize_team_id(right)


def team_sprints(board: Board | None, sprints: Iterable[Sprint]) -> list[Sprint]:
    if board is None or normalize_team_id(board.team_id) is None:
        return []
    return [s for s in sprints if same_team(s.team_id, board.team_id)]


def resolve_sprint_selection(
    board: Board | None,
    sprints: Iterable[Sprint],
    current_selection: str | None = None,
) -> str | None:
    """Return the sprint id to narrow a team board to, or None for no narrowing.

    A current selection that still names one of the team's sprints is kept, so a
    sprint reload never moves the user off the sprint they picked. Otherwise the
    team's ACTIVE sprint wins, then the team's first sprint in list order.
    Project boards (no team id) never select a sprint.
    """
    candidates = team_sprints(board, sprints)
    if not candidates:
        return None

    if current_selection is not None and any(s.id == current_selection for s in candidates):
        return current_selection

    for sprint in candidates:
        if sprint.status is SprintStatus.ACTIVE:
            return sprint.id
    return candidates[0].id
