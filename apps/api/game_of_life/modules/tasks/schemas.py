from __future__ import annotations

from pydantic import BaseModel, Field


class TaskFields(BaseModel):
    name: str
    description: str
    completed: int = Field(ge=0, le=1)  # 0|1, stored as-is


class Task(BaseModel):
    id: int
    fields: TaskFields
    skill_id: int
    created_at: int
    updated_at: int
