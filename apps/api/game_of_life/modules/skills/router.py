from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Depends, Form
from fastapi.responses import PlainTextResponse
from sqlalchemy.engine import Engine

from game_of_life.core.db import get_engine
from game_of_life.core.params import RowId
from game_of_life.modules.dispatch.queries import (
    CreateSkillTask,
    DeleteSkill,
    GetSkill,
    GetSkillList,
    GetSkillTaskList,
    SkillListResult,
    Success,
    TaskListResult,
    UpdateSkill,
)
from game_of_life.modules.dispatch.service import execute, expect
from game_of_life.modules.tasks.schemas import Task, TaskFields

from .schemas import Skill, SkillFields

router = APIRouter(tags=["skills"])


@router.get("/skills", response_model=List[Skill])
async def api_list_skills(engine: Engine = Depends(get_engine)) -> List[Skill]:
    result = await execute(engine, GetSkillList())
    return expect(result, SkillListResult).items


@router.get("/skills/{skill_id}", response_model=Skill)
async def api_get_skill(skill_id: RowId, engine: Engine = Depends(get_engine)) -> Skill:
    result = await execute(engine, GetSkill(id=skill_id))
    return expect(result, Skill)


@router.get("/skills/{skill_id}/tasks", response_model=List[Task])
async def api_get_skill_tasks(skill_id: RowId, engine: Engine = Depends(get_engine)) -> List[Task]:
    result = await execute(engine, GetSkillTaskList(skill_id=skill_id))
    return expect(result, TaskListResult).items


@router.post("/skills/{skill_id}/tasks", response_model=Task)
async def api_create_skill_task(
    skill_id: RowId,
    fields: Annotated[TaskFields, Form()],
    engine: Engine = Depends(get_engine),
) -> Task:
    result = await execute(engine, CreateSkillTask(skill_id=skill_id, fields=fields))
    return expect(result, Task)


@router.put("/skills/{skill_id}", response_model=Skill)
async def api_update_skill(
    skill_id: RowId,
    fields: Annotated[SkillFields, Form()],
    engine: Engine = Depends(get_engine),
) -> Skill:
    result = await execute(engine, UpdateSkill(id=skill_id, fields=fields))
    return expect(result, Skill)


@router.delete("/skills/{skill_id}", response_class=PlainTextResponse)
async def api_delete_skill(skill_id: RowId, engine: Engine = Depends(get_engine)) -> PlainTextResponse:
    result = await execute(engine, DeleteSkill(id=skill_id))
    expect(result, Success)
    return PlainTextResponse(f"Skill with id {skill_id} is deleted")
