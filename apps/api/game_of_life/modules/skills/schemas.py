from __future__ import annotations

from pydantic import BaseModel, Field


class SkillFields(BaseModel):
    name: str
    progress: int = Field(ge=0, le=255)
    level: int = Field(ge=0, le=255)


class Skill(BaseModel):
    id: int
    fields: SkillFields
    character_id: int
    created_at: int
    updated_at: int
