"""REST transport for the project-tracking backend."""

import json
import logging
from datetime import datetime, timezone

import httpx

from sprintboard.models import (
    Board,
    BoardColumnDef,
    BoardType,
    Issue,
    IssueType,
    Priority,
    Sprint,
    SprintStatus,
    status_for_id,
)
from sprintboard.providers.base import BoardTransport, TransportError
from sprintboard.settings import SprintboardSettings

logger = logging.getLogger(__name__)


def _numeric(value: str) -> int | str:
    # The backend keys boards by integer id; the engine keeps ids as strings.
    return int(value) if value.isdigit() else value


def _opt_str(value: object) -> str | None:
    return str(value) if value not in (None, "") else None


def _assignee_id(assignee: str | None) -> int | None:
    if assignee is None or not assignee.strip().isdigit():
        return None
    return int(assignee)


def _parse_labels(raw: str | list | None) -> list[str]:
    if isinstance(raw, list):
        return [str(label) for label in raw]
    if not raw:
        return []
    try:
        labels = json.loads(raw)
    except json.JSONDecodeError:
        return []
    return [str(label) for label in labels] if isinstance(labels, list) else []


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class HttpBoardTransport(BoardTransport):
    def __init__(self, settings: SprintboardSettings, client: httpx.AsyncClient | None = None) -> None:
        if not settings.api_url:
            raise RuntimeError("api_url is required")
        if not settings.api_token:
            raise RuntimeError("api_token is required")
        self._base_url = settings.api_url.rstrip("/")
        self._user_id = settings.user_id
        self._client = client or httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {settings.api_token.get_secret_value()}",
                "Accept": "application/json",
            },
            timeout=settings.request_timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> object:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc
        if response.status_code == 401:
            raise TransportError("Backend returned 401. Update api_token for the active profile.")
        if response.is_error:
            raise TransportError(f"{method} {path} returned HTTP {response.status_code}")
        if response.status_code == 204 or not response.content.strip():
            return None
        try:
            envelope = response.json()
        except ValueError as exc:
            raise TransportError(f"{method} {path} returned a body that is not JSON") from exc
        if not isinstance(envelope, dict):
            raise TransportError(f"{method} {path} returned an unexpected payload")
        status = envelope.get("status", 200)
        if not isinstance(status, int) or not 200 <= status < 300:
            raise TransportError(envelope.get("message") or f"{method} {path} returned status {status}")
        return envelope.get("data")

    # -----------------------------------------------------------------------
    # Wire → domain
    # -----------------------------------------------------------------------

    def _issue_from_node(self, node: dict) -> Issue:
        now = datetime.now(timezone.utc)
        status_id = node.get("statusId")
        assignee = node.get("assigneeName") or (str(node["assigneeId"]) if node.get("assigneeId") is not None else None)
        issue_type = node.get("issueType")
        priority = node.get("priority")
        return Issue(
            id=str(node["id"]),
            key=node.get("key"),
            title=node.get("title") or "",
            description=node.get("description") or "",
            type=issue_type if issue_type in IssueType.__members__ else IssueType.TASK,
            priority=priority if priority in Priority.__members__ else Priority.MEDIUM,
            status=status_for_id(status_id),
            status_id=status_id,
            assignee=assignee,
            labels=_parse_labels(node.get("labels")),
            sprint_id=_opt_str(node.get("sprintId")),
            team_id=node.get("teamId"),
            epic_id=_opt_str(node.get("epicId")),
            parent_id=_opt_str(node.get("parentIssueId")),
            story_points=node.get("storyPoints"),
            created_at=node.get("createdAt") or now,
            updated_at=node.get("updatedAt") or now,
            start_date=node.get("startDate"),
            due_date=node.get("dueDate"),
        )

    def _sprint_from_node(self, node: dict) -> Sprint:
        status = node.get("status")
        return Sprint(
            id=str(node["id"]),
            name=node.get("name") or "",
            start_date=node.get("startDate"),
            end_date=node.get("dueDate"),
            status=status if status in SprintStatus.__members__ else SprintStatus.PLANNED,
            team_id=node.get("teamId"),
        )

    def _column_from_node(self, node: dict) -> BoardColumnDef:
        return BoardColumnDef(
            id=node["statusName"],
            title=node.get("boardColumnName") or node["statusName"],
            color=node.get("boardColor") or "#A1C4FD",
            position=node["position"],
            status=node["statusName"],
            status_id=node.get("statusId"),
            backend_id=str(node["id"]) if node.get("id") is not None else None,
        )

    def _board_from_node(self, node: dict) -> Board:
        columns = sorted((self._column_from_node(c) for c in node.get("columns") or []), key=lambda c: c.position)
        team_id = node.get("teamId")
        return Board(
            id=str(node["id"]),
            name=node.get("name") or "",
            project_id=str(node["projectId"]),
            type=BoardType.TEAM if team_id else BoardType.PROJECT,
            team_id=team_id,
            columns=columns,
            include_backlog=False,
            include_done=True,
            is_default=False,
        )

    # -----------------------------------------------------------------------
    # Domain → wire
    # -----------------------------------------------------------------------

    def _update_dto(self, issue: Issue, project_id: str, patch: dict) -> dict:
        merged = Issue.model_validate({**issue.model_dump(), **patch})
        return {
            "id": merged.id,
            "projectId": project_id,
            "issueType": merged.type.value,
            "title": merged.title,
            "description": merged.description or "",
            "priority": merged.priority.value,
            "assigneeId": _assignee_id(merged.assignee),
            "startDate": _iso(merged.start_date),
            "dueDate": _iso(merged.due_date),
            "sprintId": merged.sprint_id,
            "storyPoints": merged.story_points or 0,
            "epicId": merged.epic_id,
            "reporterId": self._user_id or 1,
            "attachmentUrl": "",
            "statusId": merged.status_id if merged.status_id is not None else 1,
            "labels": json.dumps(list(merged.labels)),
        }

    # -----------------------------------------------------------------------
    # BoardTransport
    # -----------------------------------------------------------------------

    async def fetch_issues_by_project(self, project_id: str) -> list[Issue]:
        nodes = await self._request("GET", f"/api/Issue/project/{project_id}/issues")
        return [self._issue_from_node(n) for n in nodes or []]  # type: ignore[union-attr]

    async def fetch_sprints_by_project(self, project_id: str) -> list[Sprint]:
        nodes = await self._request("GET", f"/api/Sprint/project/{project_id}")
        return [self._sprint_from_node(n) for n in nodes or []]  # type: ignore[union-attr]

    async def fetch_boards_by_project(self, project_id: str) -> list[Board]:
        nodes = await self._request("GET", f"/api/Board/project/{project_id}")
        return [self._board_from_node(n) for n in nodes or []]  # type: ignore[union-attr]

    async def fetch_board_by_id(self, board_id: str) -> Board:
        node = await self._request("GET", f"/api/Board/{board_id}", params={"includeInactive": "false"})
        if not node:
            raise TransportError(f"Board '{board_id}' not found")
        return self._board_from_node(node)  # type: ignore[arg-type]

    async def persist_issue_status_change(self, issue: Issue, new_status_id: int, project_id: str) -> None:
        await self.persist_issue_update(issue, project_id, {"status_id": new_status_id})

    async def persist_issue_update(self, issue: Issue, project_id: str, patch: dict) -> None:
        dto = self._update_dto(issue, project_id, patch)
        logger.debug("PUT /api/Issue %s", dto)
        await self._request("PUT", "/api/Issue", json=dto)

    async def persist_column_create(self, board_id: str, column: BoardColumnDef) -> None:
        await self._request(
            "POST",
            "/api/Board/column",
            json={
                "boardId": _numeric(board_id),
                "boardColumnName": column.title,
                "boardColor": column.color,
                "statusName": column.status or column.id,
                "position": column.position,
            },
        )

    async def persist_column_update(self, board_id: str, column: BoardColumnDef) -> None:
        column_id = column.backend_id or column.id
        await self._request(
            "PUT",
            f"/api/Board/column/{column_id}",
            json={
                "columnId": column_id,
                "boardId": _numeric(board_id),
                "boardColumnName": column.title,
                "boardColor": column.color,
                "position": column.position,
                "updatedBy": self._user_id,
            },
        )

    async def persist_column_delete(self, board_id: str, column: BoardColumnDef) -> None:
        column_id = column.backend_id or column.id
        await self._request(
            "DELETE",
            f"/api/Board/column/{column_id}",
            params={"boardId": str(board_id), "deletedBy": str(self._user_id)},
        )
