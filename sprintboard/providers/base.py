"""Abstract base class for board transports."""

from abc import ABC, abstractmethod

from sprintboard.models import Board, BoardColumnDef, Issue, Sprint


class TransportError(RuntimeError):
    """A backend call failed (HTTP error, rejected request, unreachable host)."""


class BoardTransport(ABC):
    @abstractmethod
    async def fetch_issues_by_project(self, project_id: str) -> list[Issue]: ...

    @abstractmethod
    async def fetch_sprints_by_project(self, project_id: str) -> list[Sprint]: ...

    @abstractmethod
    async def fetch_boards_by_project(self, project_id: str) -> list[Board]: ...

    @abstractmethod
    async def fetch_board_by_id(self, board_id: str) -> Board: ...

    @abstractmethod
    async def persist_issue_status_change(self, issue: Issue, new_status_id: int, project_id: str) -> None: ...

    @abstractmethod
    async def persist_issue_update(self, issue: Issue, project_id: str, patch: dict) -> None: ...

    @abstractmethod
    async def persist_column_create(self, board_id: str, column: BoardColumnDef) -> None: ...

    @abstractmethod
    async def persist_column_update(self, board_id: str, column: BoardColumnDef) -> None: ...

    @abstractmethod
    async def persist_column_delete(self, board_id: str, column: BoardColumnDef) -> None: ...

    async def aclose(self) -> None:
        return None
