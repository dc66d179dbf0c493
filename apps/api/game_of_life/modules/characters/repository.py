"""
Character persistence (raw SQL).

Character is the root of the hierarchy: its mutations touch nothing above it.
Deleting a character removes its skills and their tasks through the
ON DELETE CASCADE foreign keys.
"""
from __future__ import annotations

from typing import Any, List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Connection

from game_of_life.core.db import now_ms
from game_of_life.core.errors import ConsistencyError, NotFound
from game_of_life.core.rows import build, row_values

from .schemas import Character, CharacterFields

COLUMNS = ("id", "name", "avatar", "notes", "quote", "created_at", "updated_at")
_SELECT = f"SELECT {', '.join(COLUMNS)} FROM character"


def _row_to_character(row: Sequence[Any]) -> Character:
    d = row_values(row, COLUMNS)
    return build(
        Character,
        {
            "id": d["id"],
            "fields": {"name": d["name"], "avatar": d["avatar"], "notes": d["notes"], "quote": d["quote"]},
            "created_at": d["created_at"],
            "updated_at": d["updated_at"],
        },
    )


def list_characters(conn: Connection) -> List[Character]:
    rows = conn.execute(text(_SELECT)).fetchall()
    return [_row_to_character(r) for r in rows]


def get_character(conn: Connection, character_id: int) -> Character:
    row = conn.execute(text(f"{_SELECT} WHERE id = :id"), {"id": character_id}).first()
    if row is None:
        raise NotFound()
    return _row_to_character(row)


def create_character(conn: Connection, fields: CharacterFields, timestamp: Optional[int] = None) -> int:
    timestamp = timestamp if timestamp is not None else now_ms()
    result = conn.execute(
        text(
            "INSERT INTO character (name, avatar, notes, quote, created_at, updated_at) "
            "VALUES (:name, :avatar, :notes, :quote, :ts, :ts)"
        ),
        {**fields.model_dump(), "ts": timestamp},
    )
    if result.rowcount != 1:
        raise ConsistencyError(f"insert into character affected {result.rowcount} rows")
    return int(result.lastrowid)


def update_character(
    conn: Connection, character_id: int, fields: CharacterFields, timestamp: Optional[int] = None
) -> None:
    timestamp = timestamp if timestamp is not None else now_ms()
    result = conn.execute(
        text(
            "UPDATE character SET name = :name, avatar = :avatar, notes = :notes, quote = :quote, "
            "updated_at = :ts WHERE id = :id"
        ),
        {**fields.model_dump(), "ts": timestamp, "id": character_id},
    )
    if result.rowcount == 0:
        raise NotFound()
    if result.rowcount != 1:
        raise ConsistencyError(f"update of character {character_id} affected {result.rowcount} rows")


def delete_character(conn: Connection, character_id: int) -> None:
    result = conn.execute(text("DELETE FROM character WHERE id = :id"), {"id": character_id})
    if result.rowcount == 0:
        raise NotFound()
    if result.rowcount != 1:
        raise ConsistencyError(f"delete of character {character_id} affected {result.rowcount} rows")


def touch_character(conn: Connection, character_id: int, timestamp: int) -> None:
    result = conn.execute(
        text("UPDATE character SET updated_at = :ts WHERE id = :id"),
        {"ts": timestamp, "id": character_id},
    )
    if result.rowcount != 1:
        raise ConsistencyError(f"touch of character {character_id} affected {result.rowcount} rows")
