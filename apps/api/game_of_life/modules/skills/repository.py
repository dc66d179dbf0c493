"""
Skill persistence (raw SQL).

Every skill mutation bumps the owning character's updated_at with the same
timestamp as the mutation itself.
"""
from __future__ import annotations

from typing import Any, List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Connection

from game_of_life.core.db import now_ms
from game_of_life.core.errors import ConsistencyError, NotFound
from game_of_life.core.rows import build, row_values
from game_of_life.modules.characters.repository import touch_character

from .schemas import Skill, SkillFields

COLUMNS = ("id", "name", "progress", "level", "character_id", "created_at", "updated_at")
_SELECT = f"SELECT {', '.join(COLUMNS)} FROM skill"


def _row_to_skill(row: Sequence[Any]) -> Skill:
    d = row_values(row, COLUMNS)
    return build(
        Skill,
        {
            "id": d["id"],
            "fields": {"name": d["name"], "progress": d["progress"], "level": d["level"]},
            "character_id": d["character_id"],
            "created_at": d["created_at"],
            "updated_at": d["updated_at"],
        },
    )


def character_id_of(conn: Connection, skill_id: int) -> int:
    row = conn.execute(text("SELECT character_id FROM skill WHERE id = :id"), {"id": skill_id}).first()
    if row is None:
        raise NotFound()
    return int(row[0])


def list_skills(conn: Connection, character_id: Optional[int] = None) -> List[Skill]:
    if character_id is None:
        rows = conn.execute(text(_SELECT)).fetchall()
    else:
        rows = conn.execute(
            text(f"{_SELECT} WHERE character_id = :character_id"),
            {"character_id": character_id},
        ).fetchall()
    return [_row_to_skill(r) for r in rows]


def get_skill(conn: Connection, skill_id: int) -> Skill:
    row = conn.execute(text(f"{_SELECT} WHERE id = :id"), {"id": skill_id}).first()
    if row is None:
        raise NotFound()
    return _row_to_skill(row)


def create_skill(
    conn: Connection, character_id: int, fields: SkillFields, timestamp: Optional[int] = None
) -> int:
    timestamp = timestamp if timestamp is not None else now_ms()
    result = conn.execute(
        text(
            "INSERT INTO skill (name, progress, level, character_id, created_at, updated_at) "
            "VALUES (:name, :progress, :level, :character_id, :ts, :ts)"
        ),
        {**fields.model_dump(), "character_id": character_id, "ts": timestamp},
    )
    if result.rowcount != 1:
        raise ConsistencyError(f"insert into skill affected {result.rowcount} rows")
    skill_id = int(result.lastrowid)

    touch_character(conn, character_id, timestamp)
    return skill_id


def update_skill(conn: Connection, skill_id: int, fields: SkillFields, timestamp: Optional[int] = None) -> None:
    timestamp = timestamp if timestamp is not None else now_ms()
    result = conn.execute(
        text(
            "UPDATE skill SET name = :name, progress = :progress, level = :level, updated_at = :ts "
            "WHERE id = :id"
        ),
        {**fields.model_dump(), "ts": timestamp, "id": skill_id},
    )
    if result.rowcount == 0:
        raise NotFound()
    if result.rowcount != 1:
        raise ConsistencyError(f"update of skill {skill_id} affected {result.rowcount} rows")

    touch_character(conn, character_id_of(conn, skill_id), timestamp)


def delete_skill(conn: Connection, skill_id: int, timestamp: Optional[int] = None) -> None:
    timestamp = timestamp if timestamp is not None else now_ms()

    # the row (and its character_id) is gone after the delete
    character_id = character_id_of(conn, skill_id)

    result = conn.execute(text("DELETE FROM skill WHERE id = :id"), {"id": skill_id})
    if result.rowcount == 0:
        raise NotFound()
    if result.rowcount != 1:
        raise ConsistencyError(f"delete of skill {skill_id} affected {result.rowcount} rows")

    touch_character(conn, character_id, timestamp)


def touch_skill(conn: Connection, skill_id: int, timestamp: int) -> None:
    result = conn.execute(
        text("UPDATE skill SET updated_at = :ts WHERE id = :id"),
        {"ts": timestamp, "id": skill_id},
    )
    if result.rowcount != 1:
        raise ConsistencyError(f"touch of skill {skill_id} affected {result.rowcount} rows")
