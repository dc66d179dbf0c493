"""
Task persistence (raw SQL).

Task mutations walk the whole ownership chain: the owning skill is touched
first, then the character that owns that skill, both with the mutation's
timestamp.
"""
from __future__ import annotations

from typing import Any, List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Connection

from game_of_life.core.db import now_ms
from game_of_life.core.errors import ConsistencyError, NotFound
from game_of_life.core.rows import build, row_values
from game_of_life.modules.characters.repository import touch_character
from game_of_life.modules.skills.repository import character_id_of, touch_skill

from .schemas import Task, TaskFields

COLUMNS = ("id", "name", "description", "completed", "skill_id", "created_at", "updated_at")
_SELECT = f"SELECT {', '.join(COLUMNS)} FROM task"


def _row_to_task(row: Sequence[Any]) -> Task:
    d = row_values(row, COLUMNS)
    return build(
        Task,
        {
            "id": d["id"],
            "fields": {"name": d["name"], "description": d["description"], "completed": d["completed"]},
            "skill_id": d["skill_id"],
            "created_at": d["created_at"],
            "updated_at": d["updated_at"],
        },
    )


def skill_id_of(conn: Connection, task_id: int) -> int:
    row = conn.execute(text("SELECT skill_id FROM task WHERE id = :id"), {"id": task_id}).first()
    if row is None:
        raise NotFound()
    return int(row[0])


def _touch_ancestors(conn: Connection, skill_id: int, timestamp: int) -> None:
    touch_skill(conn, skill_id, timestamp)
    touch_character(conn, character_id_of(conn, skill_id), timestamp)


def list_tasks(conn: Connection, skill_id: Optional[int] = None) -> List[Task]:
    if skill_id is None:
        rows = conn.execute(text(_SELECT)).fetchall()
    else:
        rows = conn.execute(text(f"{_SELECT} WHERE skill_id = :skill_id"), {"skill_id": skill_id}).fetchall()
    return [_row_to_task(r) for r in rows]


def get_task(conn: Connection, task_id: int) -> Task:
    row = conn.execute(text(f"{_SELECT} WHERE id = :id"), {"id": task_id}).first()
    if row is None:
        raise NotFound()
    return _row_to_task(row)


def create_task(conn: Connection, skill_id: int, fields: TaskFields, timestamp: Optional[int] = None) -> int:
    timestamp = timestamp if timestamp is not None else now_ms()
    result = conn.execute(
        text(
            "INSERT INTO task (name, description, completed, skill_id, created_at, updated_at) "
            "VALUES (:name, :description, :completed, :skill_id, :ts, :ts)"
        ),
        {**fields.model_dump(), "skill_id": skill_id, "ts": timestamp},
    )
    if result.rowcount != 1:
        raise ConsistencyError(f"insert into task affected {result.rowcount} rows")
    task_id = int(result.lastrowid)

    _touch_ancestors(conn, skill_id, timestamp)
    return task_id


def update_task(conn: Connection, task_id: int, fields: TaskFields, timestamp: Optional[int] = None) -> None:
    timestamp = timestamp if timestamp is not None else now_ms()
    result = conn.execute(
        text(
            "UPDATE task SET name = :name, description = :description, completed = :completed, "
            "updated_at = :ts WHERE id = :id"
        ),
        {**fields.model_dump(), "ts": timestamp, "id": task_id},
    )
    if result.rowcount == 0:
        raise NotFound()
    if result.rowcount != 1:
        raise ConsistencyError(f"update of task {task_id} affected {result.rowcount} rows")

    _touch_ancestors(conn, skill_id_of(conn, task_id), timestamp)


def delete_task(conn: Connection, task_id: int, timestamp: Optional[int] = None) -> None:
    timestamp = timestamp if timestamp is not None else now_ms()

    # parents are looked up before the row disappears
    skill_id = skill_id_of(conn, task_id)
    character_id = character_id_of(conn, skill_id)

    result = conn.execute(text("DELETE FROM task WHERE id = :id"), {"id": task_id})
    if result.rowcount == 0:
        raise NotFound()
    if result.rowcount != 1:
        raise ConsistencyError(f"delete of task {task_id} affected {result.rowcount} rows")

    touch_skill(conn, skill_id, timestamp)
    touch_character(conn, character_id, timestamp)
