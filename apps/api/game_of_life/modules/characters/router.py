from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Depends, Form
from fastapi.responses import PlainTextResponse
from sqlalchemy.engine import Engine

from game_of_life.core.db import get_engine
from game_of_life.core.params import RowId
from game_of_life.modules.dispatch.queries import (
    CharacterListResult,
    CreateCharacter,
    CreateCharacterSkill,
    DeleteCharacter,
    GetCharacter,
    GetCharacterList,
    GetCharacterSkillList,
    GetCharacterTaskList,
    SkillListResult,
    Success,
    TaskListResult,
    UpdateCharacter,
)
from game_of_life.modules.dispatch.service import execute, expect
from game_of_life.modules.skills.schemas import Skill, SkillFields
from game_of_life.modules.tasks.schemas import Task

from .schemas import Character, CharacterFields

router = APIRouter(tags=["characters"])


@router.get("/characters", response_model=List[Character])
async def api_list_characters(engine: Engine = Depends(get_engine)) -> List[Character]:
    result = await execute(engine, GetCharacterList())
    return expect(result, CharacterListResult).items


@router.get("/characters/{character_id}", response_model=Character)
async def api_get_character(character_id: RowId, engine: Engine = Depends(get_engine)) -> Character:
    result = await execute(engine, GetCharacter(id=character_id))
    return expect(result, Character)


@router.post("/characters", response_model=Character)
async def api_create_character(
    fields: Annotated[CharacterFields, Form()],
    engine: Engine = Depends(get_engine),
) -> Character:
    result = await execute(engine, CreateCharacter(fields=fields))
    return expect(result, Character)


@router.put("/characters/{character_id}", response_model=Character)
async def api_update_character(
    character_id: RowId,
    fields: Annotated[CharacterFields, Form()],
    engine: Engine = Depends(get_engine),
) -> Character:
    result = await execute(engine, UpdateCharacter(id=character_id, fields=fields))
    return expect(result, Character)


@router.delete("/characters/{character_id}", response_class=PlainTextResponse)
async def api_delete_character(character_id: RowId, engine: Engine = Depends(get_engine)) -> PlainTextResponse:
    result = await execute(engine, DeleteCharacter(id=character_id))
    expect(result, Success)
    return PlainTextResponse(f"Character with id {character_id} is deleted")


@router.get("/characters/{character_id}/skills", response_model=List[Skill])
async def api_get_character_skills(character_id: RowId, engine: Engine = Depends(get_engine)) -> List[Skill]:
    result = await execute(engine, GetCharacterSkillList(character_id=character_id))
    return expect(result, SkillListResult).items


@router.post("/characters/{character_id}/skills", response_model=Skill)
async def api_create_character_skill(
    character_id: RowId,
    fields: Annotated[SkillFields, Form()],
    engine: Engine = Depends(get_engine),
) -> Skill:
    result = await execute(engine, CreateCharacterSkill(character_id=character_id, fields=fields))
    return expect(result, Skill)


@router.get("/characters/{character_id}/tasks", response_model=List[Task])
async def api_get_character_tasks(character_id: RowId, engine: Engine = Depends(get_engine)) -> List[Task]:
    result = await execute(engine, GetCharacterTaskList(character_id=character_id))
    return expect(result, TaskListResult).items
