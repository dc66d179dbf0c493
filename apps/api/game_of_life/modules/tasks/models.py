from __future__ import annotations

from typing import Optional
from sqlalchemy import CheckConstraint
from sqlmodel import SQLModel, Field


class TaskRow(SQLModel, table=True):
    __tablename__ = "task"
    __table_args__ = (
        CheckConstraint("completed IN (0, 1)", name="ck_task_completed"),
        {"sqlite_autoincrement": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: str
    completed: int  # 0|1
    skill_id: int = Field(foreign_key="skill.id", ondelete="CASCADE", index=True)

    created_at: int
    updated_at: int
