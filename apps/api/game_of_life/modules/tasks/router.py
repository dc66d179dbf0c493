from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Depends, Form
from fastapi.responses import PlainTextResponse
from sqlalchemy.engine import Engine

from game_of_life.core.db import get_engine
from game_of_life.core.params import RowId
from game_of_life.modules.dispatch.queries import DeleteTask, GetTask, GetTaskList, Success, TaskListResult, UpdateTask
from game_of_life.modules.dispatch.service import execute, expect

from .schemas import Task, TaskFields

# tasks are only created through POST /skills/{skill_id}/tasks
router = APIRouter(tags=["tasks"])


@router.get("/tasks", response_model=List[Task])
async def api_list_tasks(engine: Engine = Depends(get_engine)) -> List[Task]:
    result = await execute(engine, GetTaskList())
    return expect(result, TaskListResult).items


@router.get("/tasks/{task_id}", response_model=Task)
async def api_get_task(task_id: RowId, engine: Engine = Depends(get_engine)) -> Task:
    result = await execute(engine, GetTask(id=task_id))
    return expect(result, Task)


@router.put("/tasks/{task_id}", response_model=Task)
async def api_update_task(
    task_id: RowId,
    fields: Annotated[TaskFields, Form()],
    engine: Engine = Depends(get_engine),
) -> Task:
    result = await execute(engine, UpdateTask(id=task_id, fields=fields))
    return expect(result, Task)


@router.delete("/tasks/{task_id}", response_class=PlainTextResponse)
async def api_delete_task(task_id: RowId, engine: Engine = Depends(get_engine)) -> PlainTextResponse:
    result = await execute(engine, DeleteTask(id=task_id))
    expect(result, Success)
    return PlainTextResponse(f"Task with id {task_id} is deleted")
