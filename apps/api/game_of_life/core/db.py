"""
DB utilities (sqlite) for the Game of Life API.

Defaults:
- DATABASE_URL: sqlite:///./data/game_of_life.db
- DB_POOL_SIZE: 5 connections, no overflow
- DB_POOL_TIMEOUT: 10 seconds to wait for a free connection
- DB_BUSY_TIMEOUT: 5 seconds for sqlite to wait on a locked database

Every connection checked out of the pool gets `PRAGMA foreign_keys = ON`
before any statement runs; the setting is per-connection in sqlite.
"""
from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool
from sqlmodel import SQLModel

DEFAULT_DATABASE_URL = "sqlite:///./data/game_of_life.db"


def get_database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def now_ms() -> int:
    """Unix time in milliseconds, the unit of every created_at/updated_at."""
    return int(time.time() * 1000)


def _repo_root() -> Path:
    # apps/api/game_of_life/core/db.py -> repo root = parents[4]
    return Path(__file__).resolve().parents[4]


def resolve_sqlite_path(database_url: str) -> Optional[Path]:
    if not database_url.startswith("sqlite:///"):
        return None
    p = database_url[len("sqlite:///") :]

    if p == ":memory:" or p == "":
        return None

    # absolute unix
    if p.startswith("/"):
        return Path(p)

    # absolute windows drive, both C:/ and C:\ forms
    if len(p) >= 3 and p[1] == ":" and (p[2] == "/" or p[2] == "\\"):
        return Path(p)

    # relative -> repo root
    return (_repo_root() / p).resolve()


def _on_connect(dbapi_connection, connection_record) -> None:
    # hand transaction control to SQLAlchemy (see _on_begin)
    dbapi_connection.isolation_level = None


def _on_checkout(dbapi_connection, connection_record, connection_proxy) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys = ON;")
    finally:
        cursor.close()


WRITE_LOCK_OPTION = "sqlite_write_lock"


def _on_begin(conn) -> None:
    # A deferred BEGIN that reads and then writes can get SQLITE_BUSY without
    # the busy handler ever running. Writers take the lock up front instead.
    if conn.get_execution_options().get(WRITE_LOCK_OPTION):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
    else:
        conn.exec_driver_sql("BEGIN")


def create_db_engine(
    url: Optional[str] = None,
    *,
    pool_size: Optional[int] = None,
    pool_timeout: Optional[float] = None,
    busy_timeout: Optional[float] = None,
) -> Engine:
    url = url or get_database_url()
    if not url.startswith("sqlite"):
        raise ValueError(f"Only sqlite supported, got DATABASE_URL={url!r}")

    sp = resolve_sqlite_path(url)
    if sp is not None:
        sp.parent.mkdir(parents=True, exist_ok=True)
        url = "sqlite:///" + sp.as_posix()

    connect_args = {
        "check_same_thread": False,
        "timeout": busy_timeout if busy_timeout is not None else _env_float("DB_BUSY_TIMEOUT", 5.0),
    }

    engine = create_engine(
        url,
        future=True,
        connect_args=connect_args,
        poolclass=QueuePool,
        pool_size=pool_size if pool_size is not None else _env_int("DB_POOL_SIZE", 5),
        max_overflow=0,
        pool_timeout=pool_timeout if pool_timeout is not None else _env_float("DB_POOL_TIMEOUT", 10.0),
    )
    event.listen(engine, "connect", _on_connect)
    event.listen(engine, "checkout", _on_checkout)
    event.listen(engine, "begin", _on_begin)
    return engine


_engine: Optional[Engine] = None


def get_engine() -> Engine:
    global _engine
    if _engine is not None:
        return _engine
    _engine = create_db_engine()
    return _engine


def dispose_engine() -> None:
    global _engine
    if _engine is None:
        return None
    _engine.dispose()
    _engine = None


def create_tables(conn) -> None:
    """
    CREATE TABLE IF NOT EXISTS for character, skill and task.

    Table classes register on SQLModel.metadata when their modules are imported.
    """
    from game_of_life.modules.characters import models as _character_models  # noqa: F401
    from game_of_life.modules.skills import models as _skill_models  # noqa: F401
    from game_of_life.modules.tasks import models as _task_models  # noqa: F401

    SQLModel.metadata.create_all(conn, checkfirst=True)


def clear_tables(conn) -> None:
    # children first, foreign keys are enforced
    conn.execute(text("DELETE FROM task"))
    conn.execute(text("DELETE FROM skill"))
    conn.execute(text("DELETE FROM character"))


def db_health(engine: Optional[Engine] = None) -> Dict[str, Any]:
    eng = engine or get_engine()
    path = eng.url.database or ":memory:"

    try:
        with eng.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok", "kind": "sqlite", "path": path}
    except Exception as e:
        return {"status": "error", "kind": "sqlite", "path": path, "error": str(e)}
