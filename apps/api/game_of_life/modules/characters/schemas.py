from __future__ import annotations

from pydantic import BaseModel


class CharacterFields(BaseModel):
    name: str
    avatar: str
    notes: str
    quote: str


class Character(BaseModel):
    id: int
    fields: CharacterFields
    created_at: int
    updated_at: int
