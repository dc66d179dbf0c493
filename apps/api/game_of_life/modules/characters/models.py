from __future__ import annotations

from typing import Optional
from sqlmodel import SQLModel, Field


class CharacterRow(SQLModel, table=True):
    __tablename__ = "character"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    avatar: str
    notes: str
    quote: str

    # unix ms
    created_at: int
    updated_at: int
