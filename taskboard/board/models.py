from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: Optional[str] = None


class Column(BaseModel):
    id: str
    title: str
    tasks: List[Task] = Field(default_factory=list)


class AddTaskRequest(BaseModel):
    # Blank titles are rejected by the store, not here, so the API reports them the same way.
    title: str = ""
    description: Optional[str] = None
