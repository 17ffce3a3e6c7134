"""Visible-issue pipeline: team scoping, sprint scoping, filters, search, ordering."""

from collections.abc import Iterable, Sequence

from sprintboard.filters import matches
from sprintboard.models import Board, FilterState, Issue, Sprint, Status
from sprintboard.resolver import normalize_team_id, same_team, team_sprints

STATUS_RANK: dict[Status, int] = {
    Status.TODO: 0,
    Status.IN_PROGRESS: 1,
    Status.BLOCKED: 2,
    Status.IN_REVIEW: 3,
    Status.DONE: 4,
}


def issue_sort_key(issue: Issue) -> tuple:
    # Title/description are deliberately absent so editing a card never moves it.
    return (STATUS_RANK.get(issue.status, len(STATUS_RANK)), issue.created_at, issue.updated_at)


def is_team_board(board: Board | None) -> bool:
    return board is not None and normalize_team_id(board.team_id) is not None


def scope_to_team(issues: Iterable[Issue], board: Board, sprints: Iterable[Sprint]) -> list[Issue]:
    """Keep issues owned by the board's team directly or through one of its sprints."""
    owned_sprint_ids = {s.id for s in team_sprints(board, sprints)}
    return [
        issue
        for issue in issues
        if same_team(issue.team_id, board.team_id)
        or (normalize_team_id(issue.team_id) is None and issue.sprint_id in owned_sprint_ids)
    ]


def compute_visible(
    issues: Sequence[Issue],
    board: Board | None,
    sprint_selection: str | None,
    filters: FilterState,
    search: str = "",
    sprints: Sequence[Sprint] = (),
) -> list[Issue]:
    """Return the issues a board shows, in display order.

    Pure: the inputs are never modified and equal inputs give equal output.
    """
    visible = list(issues)

    if board is not None and is_team_board(board):
        visible = scope_to_team(visible, board, sprints)
        if sprint_selection is not None:
            visible = [
                i
                for i in visible
                if i.sprint_id == sprint_selection or (board.include_backlog and i.sprint_id is None)
            ]

    if board is not None and not board.include_done:
        visible = [i for i in visible if i.status is not Status.DONE]

    visible = [i for i in visible if matches(i, filters, search)]
    return sorted(visible, key=issue_sort_key)
