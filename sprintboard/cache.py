"""Explicit cache entries for project loads, keyed by project id."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from sprintboard.models import Board


@dataclass(frozen=True)
class LoadedSlice:
    project_id: str
    count: int
    loaded_at: float


@dataclass
class ProjectLoadCache:
    """Remembers which project slices (issues, sprints) loaded successfully.

    A slice only counts as loaded when the last load for that project returned
    records. Failed or empty loads are never recorded, so the next visit retries.
    """

    clock: Callable[[], float] = time.monotonic
    _entries: dict[tuple[str, str], LoadedSlice] = field(default_factory=dict)

    def record(self, project_id: str, slice_name: str, count: int) -> None:
        if count:
            self._entries[(project_id, slice_name)] = LoadedSlice(project_id, count, self.clock())
        else:
            self._entries.pop((project_id, slice_name), None)

    def is_loaded(self, project_id: str, slice_name: str, current_count: int) -> bool:
        # Both conditions: an earlier success for this project AND records still in the store.
        return current_count > 0 and (project_id, slice_name) in self._entries

    def invalidate(self, project_id: str) -> None:
        for key in [k for k in self._entries if k[0] == project_id]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()


@dataclass(frozen=True)
class BoardCacheEntry:
    boards: list[Board]
    timestamp: float


@dataclass
class BoardListCache:
    ttl_seconds: float = 180
    clock: Callable[[], float] = time.monotonic
    _entries: dict[str, BoardCacheEntry] = field(default_factory=dict)

    def get(self, project_id: str) -> list[Board] | None:
        entry = self._entries.get(project_id)
        if entry is None or self.clock() - entry.timestamp >= self.ttl_seconds:
            return None
        return entry.boards

    def put(self, project_id: str, boards: list[Board]) -> None:
        self._entries[project_id] = BoardCacheEntry(boards=list(boards), timestamp=self.clock())

    def invalidate(self, project_id: str) -> None:
        self._entries.pop(project_id, None)

    def clear(self) -> None:
        self._entries.clear()
