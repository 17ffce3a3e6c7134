"""Mutation & sync controller: local issue/column writes, persistence, drag-and-drop."""

import logging
import secrets
import time
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from sprintboard import columns as column_ops
from sprintboard.models import (
    BoardColumnDef,
    Issue,
    IssueDraft,
    IssueType,
    MutationResult,
    Priority,
    Status,
    status_for_id,
)
from sprintboard.providers.base import BoardTransport, TransportError
from sprintboard.store import BoardStore, SessionState

logger = logging.getLogger(__name__)

# Status id of the default column for each status, used when a new issue has no explicit status id.
STATUS_ID_BY_STATUS: dict[Status, int] = {Status(c.status): c.status_id for c in column_ops.DEFAULT_COLUMNS}


def new_issue_id() -> str:
    """Millisecond timestamp plus a random suffix, so rapid creation never collides."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def status_for_column(column: BoardColumnDef) -> Status:
    if column.status in Status.__members__:
        return Status(column.status)
    return status_for_id(column.status_id)


# ---------------------------------------------------------------------------
# Drag-and-drop list helpers
# ---------------------------------------------------------------------------


def _clamp(index: int, upper: int) -> int:
    return max(0, min(index, upper))


def move_item_in_list(items: Sequence[Issue], from_index: int, to_index: int) -> list[Issue]:
    """Return a copy of ``items`` with one item moved. Indexes are clamped to the list."""
    moved = list(items)
    if not moved:
        return moved
    from_index = _clamp(from_index, len(moved) - 1)
    to_index = _clamp(to_index, len(moved) - 1)
    moved.insert(to_index, moved.pop(from_index))
    return moved


def transfer_item(
    source: Sequence[Issue], target: Sequence[Issue], from_index: int, to_index: int
) -> tuple[list[Issue], list[Issue]]:
    """Return copies of both lists with one item moved from ``source`` into ``target``."""
    new_source, new_target = list(source), list(target)
    if not new_source:
        return new_source, new_target
    item = new_source.pop(_clamp(from_index, len(new_source) - 1))
    new_target.insert(_clamp(to_index, len(new_target)), item)
    return new_source, new_target


class DropEvent(BaseModel):
    """A card dropped by the user. The item lists are the caller's transient column contents."""

    model_config = ConfigDict(frozen=True)

    source_column_id: str
    target_column_id: str
    previous_index: int
    current_index: int
    source_items: list[Issue]
    target_items: list[Issue] = []


class DropResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    source_items: list[Issue]
    target_items: list[Issue]
    mutation: MutationResult | None = None
    error: str | None = None


class MutationController:
    """The only writer of the store's issue and column slices after loading."""

    def __init__(self, store: BoardStore, transport: BoardTransport | None = None) -> None:
        self.store = store
        self._transport = transport

    @property
    def transport(self) -> BoardTransport:
        transport = self._transport or self.store.transport
        if transport is None:
            raise RuntimeError("MutationController has no transport configured")
        return transport

    def _project_id(self, project_id: str | None) -> str:
        resolved = project_id or self.store.project_id or (self.store.board.project_id if self.store.board else None)
        if resolved is None:
            raise RuntimeError("No project selected")
        return resolved

    # -----------------------------------------------------------------------
    # Issues
    # -----------------------------------------------------------------------

    def _commit(self, updated: Issue) -> None:
        self.store._replace_issues([updated if i.id == updated.id else i for i in self.store.issues])

    def _touched(self, issue: Issue, patch: dict) -> Issue:
        # updated_at never goes backwards, even if the clock does
        now = max(self.store.clock(), issue.updated_at)
        fields = {k: v for k, v in patch.items() if k != "id"}
        return Issue.model_validate({**issue.model_dump(), **fields, "updated_at": now})

    def update_issue_field(self, issue_id: str, patch: dict) -> Issue | None:
        """Replace the issue with ``patch`` applied and a fresh ``updated_at``.

        Returns None, and changes nothing, when the issue is unknown.
        """
        current = self.store.find_issue(issue_id)
        if current is None:
            logger.warning("update_issue_field: unknown issue %s", issue_id)
            return None
        updated = self._touched(current, patch)
        self._commit(updated)
        return updated

    async def _persist(self, issue_id: str, patch: dict, project_id: str | None, persist) -> MutationResult:
        previous = self.store.find_issue(issue_id)
        if previous is None:
            logger.warning("Mutation for unknown issue %s ignored", issue_id)
            return MutationResult(ok=False, error=f"Unknown issue '{issue_id}'")
        project = self._project_id(project_id)

        updated = self.update_issue_field(issue_id, patch)
        self.store._set_session(SessionState.MUTATING)
        try:
            await persist(previous, project)
        except TransportError as exc:
            logger.error("Persisting issue %s failed: %s", issue_id, exc)
            return MutationResult(ok=False, issue=updated, previous=previous, error=str(exc))
        except Exception as exc:
            # Malformed payloads and mapping bugs count as a failed persist too
            logger.exception("Persisting issue %s failed unexpectedly", issue_id)
            return MutationResult(ok=False, issue=updated, previous=previous, error=str(exc) or type(exc).__name__)
        finally:
            self.store._set_session(SessionState.READY)
        return MutationResult(ok=True, issue=updated, previous=previous)

    async def update_issue_status_optimistic(
        self, issue_id: str, new_status_id: int, project_id: str | None = None
    ) -> MutationResult:
        """Move an issue to ``new_status_id`` locally, then persist.

        On failure the local patch stays applied; pass the result to ``rollback``
        to undo it.
        """
        column = column_ops.column_for_status_id(self.store.columns, new_status_id)
        status = status_for_column(column) if column else status_for_id(new_status_id)
        return await self._persist(
            issue_id,
            {"status_id": new_status_id, "status": status},
            project_id,
            lambda previous, project: self.transport.persist_issue_status_change(previous, new_status_id, project),
        )

    async def update_issue(self, issue_id: str, patch: dict, project_id: str | None = None) -> MutationResult:
        """Apply ``patch`` locally, then persist it. Same failure contract as the status update."""
        return await self._persist(
            issue_id,
            patch,
            project_id,
            lambda previous, project: self.transport.persist_issue_update(previous, project, patch),
        )

    def rollback(self, result: MutationResult) -> Issue | None:
        """Undo a failed optimistic mutation.

        Skipped when the issue changed again after ``result`` was produced
        (the later write wins) or no longer exists.
        """
        if result.previous is None or result.issue is None:
            return None
        current = self.store.find_issue(result.previous.id)
        if current is None:
            logger.warning("rollback: issue %s no longer exists", result.previous.id)
            return None
        if current is not result.issue:
            logger.warning("rollback: issue %s changed since the failed mutation; keeping the newer write", current.id)
            return None
        restored = self._touched(current, result.previous.model_dump(exclude={"id", "created_at", "updated_at"}))
        self._commit(restored)
        self.store._set_session(SessionState.ERROR_REVERTED)
        return restored

    def create_issue(self, draft: IssueDraft | dict) -> Issue:
        """Create an issue locally with defaults filled in and append it to the store."""
        if isinstance(draft, dict):
            draft = IssueDraft.model_validate(draft)
        now = self.store.clock()
        status = draft.status or (status_for_id(draft.status_id) if draft.status_id is not None else Status.TODO)
        board = self.store.board

        issue = Issue(
            id=new_issue_id(),
            title=draft.title,
            description=draft.description,
            type=draft.type or IssueType.TASK,
            priority=draft.priority or Priority.MEDIUM,
            status=status,
            status_id=draft.status_id if draft.status_id is not None else STATUS_ID_BY_STATUS.get(status),
            assignee=draft.assignee,
            labels=draft.labels or [],
            sprint_id=draft.sprint_id if "sprint_id" in draft.model_fields_set else self.store.sprint_selection,
            team_id=draft.team_id if draft.team_id is not None else (board.team_id if board else None),
            epic_id=draft.epic_id,
            parent_id=draft.parent_id,
            story_points=draft.story_points,
            created_at=now,
            updated_at=now,
            start_date=draft.start_date,
            due_date=draft.due_date,
        )
        self.store._replace_issues([*self.store.issues, issue])
        return issue

    # -----------------------------------------------------------------------
    # Columns
    # -----------------------------------------------------------------------

    def add_column(self, column: BoardColumnDef) -> list[BoardColumnDef]:
        columns = column_ops.add_column(self.store.columns, column)
        self.store._replace_columns(columns)
        return columns

    def remove_column(self, column_id: str) -> list[BoardColumnDef]:
        if column_ops.find_column(self.store.columns, column_id) is None:
            logger.warning("remove_column: unknown column %s", column_id)
            return self.store.columns
        columns = column_ops.remove_column(self.store.columns, column_id)
        self.store._replace_columns(columns)
        return columns

    def move_column(self, column_id: str, new_position: int) -> list[BoardColumnDef]:
        if column_ops.find_column(self.store.columns, column_id) is None:
            logger.warning("move_column: unknown column %s", column_id)
            return self.store.columns
        columns = column_ops.move_column(self.store.columns, column_id, new_position)
        self.store._replace_columns(columns)
        return columns

    def _board_id(self) -> str:
        if self.store.board is None:
            raise RuntimeError("No board selected")
        return self.store.board.id

    async def create_column(self, column: BoardColumnDef) -> list[BoardColumnDef]:
        """Persist a new column, then insert it locally. Raises TransportError on failure."""
        board_id = self._board_id()
        placed = column_ops.add_column(self.store.columns, column)
        new_column = next(c for c in placed if c.id == column.id)
        try:
            await self.transport.persist_column_create(board_id, new_column)
        except TransportError as exc:
            logger.error("Creating column %s on board %s failed: %s", column.id, board_id, exc)
            raise
        self.store._replace_columns(placed)
        return placed

    async def delete_column(self, column_id: str) -> list[BoardColumnDef]:
        """Persist a column deletion, then remove it locally. Unknown ids are a no-op."""
        column = column_ops.find_column(self.store.columns, column_id)
        if column is None:
            logger.warning("delete_column: unknown column %s", column_id)
            return self.store.columns
        board_id = self._board_id()
        try:
            await self.transport.persist_column_delete(board_id, column)
        except TransportError as exc:
            logger.error("Deleting column %s on board %s failed: %s", column_id, board_id, exc)
            raise
        return self.remove_column(column_id)

    async def reposition_column(self, column_id: str, new_position: int) -> list[BoardColumnDef]:
        """Persist every column whose position changes, then apply the move locally."""
        if column_ops.find_column(self.store.columns, column_id) is None:
            logger.warning("reposition_column: unknown column %s", column_id)
            return self.store.columns
        board_id = self._board_id()
        before = {c.id: c.position for c in self.store.columns}
        moved = column_ops.move_column(self.store.columns, column_id, new_position)
        try:
            for column in moved:
                if before.get(column.id) != column.position:
                    await self.transport.persist_column_update(board_id, column)
        except TransportError as exc:
            logger.error("Moving column %s on board %s failed: %s", column_id, board_id, exc)
            raise
        self.store._replace_columns(moved)
        return moved

    # -----------------------------------------------------------------------
    # Drag-and-drop
    # -----------------------------------------------------------------------

    async def drop(self, event: DropEvent) -> DropResult:
        """Handle a card drop.

        Within one column this is a pure reorder of the transient list. Across
        columns the issue's status is persisted; if that fails the transfer and
        the optimistic status change are both undone.
        """
        if not 0 <= event.previous_index < len(event.source_items):
            logger.warning("drop: index %s is outside column %s", event.previous_index, event.source_column_id)
            return DropResult(
                ok=False,
                source_items=event.source_items,
                target_items=event.target_items,
                error=f"No card at index {event.previous_index} in column '{event.source_column_id}'",
            )

        if event.source_column_id == event.target_column_id:
            items = move_item_in_list(event.source_items, event.previous_index, event.current_index)
            return DropResult(ok=True, source_items=items, target_items=items)

        target = column_ops.find_column(self.store.columns, event.target_column_id)
        if target is None or target.status_id is None:
            logger.warning("drop: target column %s cannot accept issues", event.target_column_id)
            return DropResult(
                ok=False,
                source_items=event.source_items,
                target_items=event.target_items,
                error=f"Column '{event.target_column_id}' has no status",
            )

        moved = event.source_items[event.previous_index]
        source_items, target_items = transfer_item(
            event.source_items, event.target_items, event.previous_index, event.current_index
        )
        result = await self.update_issue_status_optimistic(moved.id, target.status_id)
        if result.ok:
            return DropResult(ok=True, source_items=source_items, target_items=target_items, mutation=result)

        self.rollback(result)
        return DropResult(
            ok=False,
            source_items=event.source_items,
            target_items=event.target_items,
            mutation=result,
            error=result.error,
        )
