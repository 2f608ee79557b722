"""
In-memory Kanban board.

One store per page view. Columns are fixed when the board is created; the only
mutation is appending a task to a column.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Iterable, List, Literal, Optional

from taskboard.board.models import Column, Task

logger = logging.getLogger(__name__)

AddTaskError = Literal["not_found", "empty_title"]


def seed_columns() -> List[Column]:
    return [
        Column(
            id="backlog",
            title="Backlog",
            tasks=[
                Task(
                    id="task-1",
                    title="Setup Firebase Auth",
                    description="Implement all required authentication providers.",
                ),
                Task(
                    id="task-2",
                    title="Design Login Page",
                    description="Create a visually appealing and user-friendly login UI.",
                ),
            ],
        ),
        Column(
            id="in-progress",
            title="In Progress",
            tasks=[
                Task(
                    id="task-3",
                    title="Build Kanban Board UI",
                    description="Develop the main task board with columns and cards.",
                ),
                Task(
                    id="task-4",
                    title="Integrate OIDC with FusionAuth",
                    description="Set up the OIDC flow for enterprise users.",
                ),
            ],
        ),
        Column(
            id="in-review",
            title="In Review",
            tasks=[
                Task(
                    id="task-5",
                    title="Implement Protected Routes",
                    description="Use middleware to secure dashboard access.",
                ),
            ],
        ),
        Column(
            id="done",
            title="Done",
            tasks=[
                Task(
                    id="task-6",
                    title="Define Color Palette & Fonts",
                    description="Update globals.css and tailwind.config.ts with the new design system.",
                ),
            ],
        ),
    ]


@dataclass(frozen=True)
class AddTaskResult:
    task: Optional[Task] = None
    error: Optional[AddTaskError] = None

    @property
    def ok(self) -> bool:
        return self.task is not None


class BoardStore:
    def __init__(self, columns: Optional[Iterable[Column]] = None):
        source = columns if columns is not None else seed_columns()
        self._columns: List[Column] = [c.model_copy(deep=True) for c in source]
        ids = [c.id for c in self._columns]
        if len(set(ids)) != len(ids):
            raise ValueError("Column ids must be unique within a board")
        self._seen_ids = {t.id for c in self._columns for t in c.tasks}
        self._counter = itertools.count(len(self._seen_ids) + 1)

    def columns(self) -> List[Column]:
        """Current columns in display order (copies; mutate through add_task only)."""
        return [c.model_copy(deep=True) for c in self._columns]

    def snapshot(self) -> List[dict]:
        return [c.model_dump() for c in self._columns]

    def column(self, column_id: str) -> Optional[Column]:
        for c in self._columns:
            if c.id == column_id:
                return c.model_copy(deep=True)
        return None

    def _next_id(self) -> str:
        while True:
            candidate = f"task-{next(self._counter)}"
            if candidate not in self._seen_ids:
                self._seen_ids.add(candidate)
                return candidate

    def add_task(self, column_id: str, title: str, description: Optional[str] = None) -> AddTaskResult:
        """
        Append a task to the end of a column.

        Returns a result instead of raising: a blank title is a no-op (`empty_title`), an
        unknown column leaves the board untouched (`not_found`).
        """
        if not (title or "").strip():
            return AddTaskResult(error="empty_title")

        target = next((c for c in self._columns if c.id == column_id), None)
        if target is None:
            logger.warning("add_task: unknown column %r", column_id)
            return AddTaskResult(error="not_found")

        task = Task(id=self._next_id(), title=title, description=description)
        target.tasks = [*target.tasks, task]
        logger.debug("add_task: %s -> %s", task.id, column_id)
        return AddTaskResult(task=task)
