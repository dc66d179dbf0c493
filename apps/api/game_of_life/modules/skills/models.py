from __future__ import annotations

from typing import Optional
from sqlmodel import SQLModel, Field


class SkillRow(SQLModel, table=True):
    __tablename__ = "skill"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    progress: int
    level: int
    character_id: int = Field(foreign_key="character.id", ondelete="CASCADE", index=True)

    created_at: int
    updated_at: int
