"""
Query execution.

`execute()` is the only way the HTTP layer talks to the database:

- the blocking work runs on the worker thread pool, never on the event loop
- one pooled connection is checked out per query and returned on every path
- the whole query, cascade touches included, runs in one transaction;
  writers open it with BEGIN IMMEDIATE so lock waits go through busy_timeout
- sqlite/SQLAlchemy errors are translated into the AppError taxonomy here
"""
from __future__ import annotations

import sqlite3
from typing import List, Type, TypeVar, assert_never

from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Connection, Engine
from starlette.concurrency import run_in_threadpool

from game_of_life.core.db import WRITE_LOCK_OPTION, clear_tables, create_tables
from game_of_life.core.errors import AppError, DatabaseBusy, DatabaseError, InternalError, ServiceUnavailable
from game_of_life.core.observability import current_request_id, emit
from game_of_life.modules.characters import repository as characters
from game_of_life.modules.skills import repository as skills
from game_of_life.modules.tasks import repository as tasks
from game_of_life.modules.tasks.schemas import Task

from .queries import (
    CharacterListResult,
    CreateCharacter,
    CreateCharacterSkill,
    CreateSkillTask,
    DeleteCharacter,
    DeleteSkill,
    DeleteTask,
    GetCharacter,
    GetCharacterList,
    GetCharacterSkillList,
    GetCharacterTaskList,
    GetSkill,
    GetSkillList,
    GetSkillTaskList,
    GetTask,
    GetTaskList,
    Query,
    QueryResult,
    ResetDatabase,
    SkillListResult,
    Success,
    TaskListResult,
    UpdateCharacter,
    UpdateSkill,
    UpdateTask,
    WRITE_QUERIES,
)

_BUSY_MARKERS = ("database is locked", "database table is locked", "database is busy")


def _run(conn: Connection, query: Query) -> QueryResult:
    match query:
        # --- characters ---
        case GetCharacterList():
            return CharacterListResult(items=characters.list_characters(conn))
        case GetCharacter(id=character_id):
            return characters.get_character(conn, character_id)
        case GetCharacterSkillList(character_id=character_id):
            characters.get_character(conn, character_id)
            return SkillListResult(items=skills.list_skills(conn, character_id))
        case GetCharacterTaskList(character_id=character_id):
            characters.get_character(conn, character_id)
            items: List[Task] = []
            # skill order first, then task order within each skill
            for skill in skills.list_skills(conn, character_id):
                items.extend(tasks.list_tasks(conn, skill.id))
            return TaskListResult(items=items)
        case CreateCharacter(fields=fields):
            new_id = characters.create_character(conn, fields)
            return characters.get_character(conn, new_id)
        case UpdateCharacter(id=character_id, fields=fields):
            characters.update_character(conn, character_id, fields)
            return characters.get_character(conn, character_id)
        case DeleteCharacter(id=character_id):
            characters.delete_character(conn, character_id)
            return Success()
        case CreateCharacterSkill(character_id=character_id, fields=fields):
            new_id = skills.create_skill(conn, character_id, fields)
            return skills.get_skill(conn, new_id)

        # --- skills ---
        case GetSkillList():
            return SkillListResult(items=skills.list_skills(conn))
        case GetSkill(id=skill_id):
            return skills.get_skill(conn, skill_id)
        case GetSkillTaskList(skill_id=skill_id):
            skills.get_skill(conn, skill_id)
            return TaskListResult(items=tasks.list_tasks(conn, skill_id))
        case UpdateSkill(id=skill_id, fields=fields):
            skills.update_skill(conn, skill_id, fields)
            return skills.get_skill(conn, skill_id)
        case DeleteSkill(id=skill_id):
            skills.delete_skill(conn, skill_id)
            return Success()
        case CreateSkillTask(skill_id=skill_id, fields=fields):
            new_id = tasks.create_task(conn, skill_id, fields)
            return tasks.get_task(conn, new_id)

        # --- tasks ---
        case GetTaskList():
            return TaskListResult(items=tasks.list_tasks(conn))
        case GetTask(id=task_id):
            return tasks.get_task(conn, task_id)
        case UpdateTask(id=task_id, fields=fields):
            tasks.update_task(conn, task_id, fields)
            return tasks.get_task(conn, task_id)
        case DeleteTask(id=task_id):
            tasks.delete_task(conn, task_id)
            return Success()

        # --- admin ---
        case ResetDatabase():
            clear_tables(conn)
            create_tables(conn)
            emit("warning", "db.reset", "all rows deleted, tables recreated", current_request_id(), __name__)
            return Success()

        case _:
            assert_never(query)


def _is_busy(e: sa_exc.OperationalError) -> bool:
    orig = getattr(e, "orig", None)
    if isinstance(orig, sqlite3.OperationalError):
        code = getattr(orig, "sqlite_errorcode", None)
        if code in (sqlite3.SQLITE_BUSY, sqlite3.SQLITE_LOCKED):
            return True
    msg = str(orig if orig is not None else e).lower()
    return any(m in msg for m in _BUSY_MARKERS)


def _translate(query: Query, e: Exception) -> AppError:
    op = query.op_name
    if isinstance(e, sa_exc.TimeoutError):
        # QueuePool exhausted for longer than pool_timeout
        return ServiceUnavailable()
    if isinstance(e, sa_exc.OperationalError) and _is_busy(e):
        return DatabaseBusy(f"in {op}, {getattr(e, 'orig', e)}")
    if isinstance(e, sa_exc.DBAPIError):
        return DatabaseError(f"in {op}, {getattr(e, 'orig', e)}")
    if isinstance(e, sa_exc.SQLAlchemyError):
        return DatabaseError(f"in {op}, {e}")
    return InternalError(f"in {op}, {type(e).__name__}: {e}")


def execute_blocking(engine: Engine, query: Query) -> QueryResult:
    """Run one query to completion in its own transaction on the calling thread."""
    try:
        with engine.connect() as conn:
            conn.execution_options(**{WRITE_LOCK_OPTION: isinstance(query, WRITE_QUERIES)})
            with conn.begin():
                return _run(conn, query)
    except AppError as e:
        if e.status_code >= 500:
            emit("error", "db.query.error", str(e), current_request_id(), __name__, op=query.op_name,
                 error=type(e).__name__, detail=getattr(e, "detail", None))
        raise
    except Exception as e:
        err = _translate(query, e)
        emit("error", "db.query.error", str(e), current_request_id(), __name__, op=query.op_name,
             error=type(err).__name__)
        raise err from e


async def execute(engine: Engine, query: Query) -> QueryResult:
    try:
        return await run_in_threadpool(execute_blocking, engine, query)
    except AppError:
        raise
    except Exception as e:
        # failure in the hand-off itself
        raise InternalError(f"threadpool hand-off failed: {type(e).__name__}: {e}") from e


R = TypeVar("R")


def expect(result: QueryResult, kind: Type[R]) -> R:
    """Narrow a query result to the shape the handler asked for."""
    if not isinstance(result, kind):
        raise InternalError(f"expected {kind.__name__}, got {type(result).__name__}")
    return result
