"""Board session store: canonical issue/sprint/column state and the views derived from it."""

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from enum import Enum

from sprintboard.buckets import compute_buckets
from sprintboard.cache import BoardListCache, ProjectLoadCache
from sprintboard.columns import DEFAULT_COLUMNS, enrich_boards, renumber
from sprintboard.filters import EMPTY_FILTERS, merge_filters
from sprintboard.models import Board, BoardColumnDef, BoardType, ColumnBucket, FilterState, GroupBy, Issue, Sprint
from sprintboard.pipeline import compute_visible
from sprintboard.providers.base import BoardTransport
from sprintboard.resolver import resolve_sprint_selection

logger = logging.getLogger(__name__)

ISSUES = "issues"
SPRINTS = "sprints"
BOARDS = "boards"


class SessionState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    LOADING = "LOADING"
    READY = "READY"
    MUTATING = "MUTATING"
    ERROR_REVERTED = "ERROR_REVERTED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BoardStore:
    """State for one board session.

    Every slice is replaced, never edited in place, so derived views can be
    memoized on the identity of their inputs. Only the loaders below and
    ``MutationController`` write the issue, sprint and column slices; the
    presentation layer reads properties and calls the view commands
    (sprint, search, filters, group-by).
    """

    def __init__(
        self,
        transport: BoardTransport | None = None,
        *,
        board_cache_ttl: float = 180,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.transport = transport
        self.clock = clock
        self.load_cache = ProjectLoadCache()
        self.board_cache = BoardListCache(ttl_seconds=board_cache_ttl)

        self._issues: list[Issue] = []
        self._sprints: list[Sprint] = []
        self._columns: list[BoardColumnDef] = list(DEFAULT_COLUMNS)
        self._boards: list[Board] = []
        self._board: Board | None = None
        self._project_id: str | None = None
        self._requested_board_id: str | None = None

        self._sprint_selection: str | None = None
        self._search = ""
        self._filters: FilterState = EMPTY_FILTERS
        self._group_by = GroupBy.NONE

        self._loading: dict[str, int] = {ISSUES: 0, SPRINTS: 0, BOARDS: 0}  # in-flight requests per slice
        self._session = SessionState.UNINITIALIZED

        self._memo: dict[str, tuple[tuple, object]] = {}
        self._listeners: list[Callable[[str], None]] = []

    # -----------------------------------------------------------------------
    # Reactive reads
    # -----------------------------------------------------------------------

    @property
    def issues(self) -> list[Issue]:
        return self._issues

    @property
    def sprints(self) -> list[Sprint]:
        return self._sprints

    @property
    def columns(self) -> list[BoardColumnDef]:
        return self._columns

    @property
    def boards(self) -> list[Board]:
        return self._boards

    @property
    def board(self) -> Board | None:
        return self._board

    @property
    def project_id(self) -> str | None:
        return self._project_id

    @property
    def sprint_selection(self) -> str | None:
        return self._sprint_selection

    @property
    def search(self) -> str:
        return self._search

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def group_by(self) -> GroupBy:
        return self._group_by

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def loading(self) -> bool:
        return any(self._loading.values())

    def is_loading(self, slice_name: str) -> bool:
        return self._loading[slice_name] > 0

    @property
    def visible_issues(self) -> tuple[Issue, ...]:
        """Read-only; the same tuple is returned until an input slice changes."""
        return self._derive(
            "visible",
            (self._issues, self._board, self._sprint_selection, self._filters, self._search, self._sprints),
            lambda: tuple(
                compute_visible(
                    self._issues, self._board, self._sprint_selection, self._filters, self._search, self._sprints
                )
            ),
        )

    @property
    def buckets(self) -> tuple[ColumnBucket, ...]:
        visible = self.visible_issues
        return self._derive(
            "buckets",
            (visible, self._columns, self._group_by),
            lambda: tuple(compute_buckets(visible, self._columns, self._group_by)),
        )

    def find_issue(self, issue_id: str) -> Issue | None:
        return next((i for i in self._issues if i.id == issue_id), None)

    def _derive(self, name: str, inputs: tuple, compute: Callable[[], object]):
        cached = self._memo.get(name)
        if cached is not None and len(cached[0]) == len(inputs) and all(a is b for a, b in zip(cached[0], inputs)):
            return cached[1]
        value = compute()
        self._memo[name] = (inputs, value)
        return value

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        """Call ``listener(slice_name)`` after every state change. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    def _notify(self, changed: str) -> None:
        for listener in list(self._listeners):
            listener(changed)

    # -----------------------------------------------------------------------
    # View commands
    # -----------------------------------------------------------------------

    def select_sprint(self, sprint_id: str | None) -> None:
        self._sprint_selection = sprint_id
        self._notify("sprint_selection")

    def set_search(self, text: str) -> None:
        self._search = text
        self._notify("search")

    def set_filters(self, filters: FilterState) -> None:
        self._filters = filters
        self._notify("filters")

    def merge_filters(self, **changes: list) -> None:
        self.set_filters(merge_filters(self._filters, **changes))

    def clear_filters(self) -> None:
        self.set_filters(EMPTY_FILTERS)

    def set_group_by(self, group_by: GroupBy) -> None:
        self._group_by = group_by
        self._notify("group_by")

    def set_board(self, board: Board | None) -> None:
        """Make ``board`` the current board and re-resolve the sprint selection."""
        self._board = board
        self._requested_board_id = board.id if board else None
        self._columns = renumber(board.columns) if board and board.columns else list(DEFAULT_COLUMNS)
        self._resolve_sprint_selection()
        self._notify("board")

    def reset(self, project_id: str | None = None) -> None:
        """Start a new session for ``project_id``; slices and view state are dropped."""
        self._issues = []
        self._sprints = []
        self._boards = []
        self._board = None
        self._requested_board_id = None
        self._columns = list(DEFAULT_COLUMNS)
        self._sprint_selection = None
        self._search = ""
        self._filters = EMPTY_FILTERS
        self._group_by = GroupBy.NONE
        self._project_id = project_id
        self._session = SessionState.UNINITIALIZED
        self._notify("session")

    # -----------------------------------------------------------------------
    # Slice writers (loaders and MutationController)
    # -----------------------------------------------------------------------

    def _replace_issues(self, issues: Sequence[Issue]) -> None:
        self._issues = list(issues)
        self._notify(ISSUES)

    def _replace_sprints(self, sprints: Sequence[Sprint]) -> None:
        self._sprints = list(sprints)
        self._resolve_sprint_selection()
        self._notify(SPRINTS)

    def _replace_columns(self, columns: Sequence[BoardColumnDef]) -> None:
        self._columns = list(columns)
        self._notify("columns")

    def _set_session(self, state: SessionState) -> None:
        self._session = state
        self._notify("session")

    def _resolve_sprint_selection(self) -> None:
        # Runs on both board and sprint-list changes; same inputs give the same answer.
        self._sprint_selection = resolve_sprint_selection(self._board, self._sprints, self._sprint_selection)

    def seed_from_sprints(self, sprints: Sequence[Sprint]) -> None:
        """Replace sprints and issues from sprints carrying embedded issues."""
        issues = [
            issue if issue.sprint_id else issue.model_copy(update={"sprint_id": sprint.id})
            for sprint in sprints
            for issue in sprint.issues
        ]
        self._replace_sprints(sprints)
        self._replace_issues(issues)

    def add_backlog(self, backlog: Sequence[Issue]) -> None:
        self._replace_issues([*self._issues, *backlog])

    # -----------------------------------------------------------------------
    # Loaders
    # -----------------------------------------------------------------------

    def _require_transport(self) -> BoardTransport:
        if self.transport is None:
            raise RuntimeError("BoardStore has no transport configured")
        return self.transport

    def _is_current(self, project_id: str) -> bool:
        return self._project_id == project_id

    async def load_project(self, project_id: str, force: bool = False) -> None:
        """Load issues and sprints for ``project_id`` concurrently.

        Switching projects resets the session first. Each load replaces its own
        slice, so completion order does not matter.
        """
        if not self._is_current(project_id):
            self.reset(project_id)
        self._set_session(SessionState.LOADING)
        await asyncio.gather(self.load_issues(project_id, force), self.load_sprints(project_id, force))
        if self._is_current(project_id):
            self._set_session(SessionState.READY)

    async def load_issues(self, project_id: str, force: bool = False) -> None:
        await self._load_slice(ISSUES, project_id, force)

    async def load_sprints(self, project_id: str, force: bool = False) -> None:
        await self._load_slice(SPRINTS, project_id, force)

    async def _load_slice(self, slice_name: str, project_id: str, force: bool) -> None:
        transport = self._require_transport()
        current = self._issues if slice_name == ISSUES else self._sprints
        if not force and self._is_current(project_id) and self.load_cache.is_loaded(project_id, slice_name, len(current)):
            logger.debug("Using loaded %s for project %s", slice_name, project_id)
            return

        fetch = transport.fetch_issues_by_project if slice_name == ISSUES else transport.fetch_sprints_by_project
        self._loading[slice_name] += 1
        try:
            records: list = await fetch(project_id)
        except Exception:
            logger.exception("Loading %s for project %s failed", slice_name, project_id)
            records = []
        finally:
            self._loading[slice_name] -= 1

        if not self._is_current(project_id):
            logger.debug("Discarding stale %s response for project %s", slice_name, project_id)
            return

        self.load_cache.record(project_id, slice_name, len(records))
        if slice_name == ISSUES:
            self._replace_issues(records)
        else:
            self._replace_sprints(records)

    async def load_boards(self, project_id: str, force_refresh: bool = False) -> list[Board]:
        """Load the project's boards, with project boards carrying every project column."""
        if not force_refresh:
            cached = self.board_cache.get(project_id)
            if cached is not None:
                logger.debug("Using cached boards for project %s", project_id)
                if self._is_current(project_id):
                    self._boards = cached
                    self._notify(BOARDS)
                return cached

        transport = self._require_transport()
        self._loading[BOARDS] += 1
        try:
            boards = enrich_boards(await transport.fetch_boards_by_project(project_id))
        except Exception:
            logger.exception("Loading boards for project %s failed", project_id)
            boards = []
        else:
            self.board_cache.put(project_id, boards)
        finally:
            self._loading[BOARDS] -= 1

        if self._is_current(project_id):
            self._boards = boards
            self._notify(BOARDS)
        return boards

    async def load_board(self, board_id: str) -> Board | None:
        """Fetch one board and make it current, unless another board was requested meanwhile."""
        transport = self._require_transport()
        self._requested_board_id = board_id
        try:
            board = await transport.fetch_board_by_id(board_id)
        except Exception:
            logger.exception("Loading board %s failed", board_id)
            return None

        if self._requested_board_id != board_id:
            logger.debug("Discarding stale response for board %s", board_id)
            return None

        self._boards = [board if b.id == board.id else b for b in self._boards]
        if all(b.id != board.id for b in self._boards):
            self._boards.append(board)
        self.set_board(board)
        return board

    async def open_board(self, project_id: str, board_id: str | None = None) -> Board | None:
        """Navigate to a project board: load boards, issues and sprints, then select the board.

        Without ``board_id`` the default board is used: the one flagged default,
        else the first project board, else the first board.
        """
        if not self._is_current(project_id):
            self.reset(project_id)
        boards, _ = await asyncio.gather(self.load_boards(project_id), self.load_project(project_id))
        if not self._is_current(project_id):
            return None

        if board_id is not None:
            board = next((b for b in boards if b.id == board_id), None)
            if board is None:
                return await self.load_board(board_id)
        else:
            board = (
                next((b for b in boards if b.is_default), None)
                or next((b for b in boards if b.type is BoardType.PROJECT), None)
                or (boards[0] if boards else None)
            )
        self.set_board(board)
        return board
