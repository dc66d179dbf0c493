import asyncio
import threading
import time

import pytest
from sqlalchemy import event, text

from game_of_life.core import db
from game_of_life.core.errors import (
    ConsistencyError,
    DatabaseBusy,
    DatabaseError,
    InternalError,
    NotFound,
    ServiceUnavailable,
)
from game_of_life.modules.characters import repository as characters
from game_of_life.modules.characters.schemas import Character
from game_of_life.modules.dispatch import queries as q
from game_of_life.modules.dispatch.service import execute, execute_blocking, expect
from game_of_life.modules.skills.schemas import Skill, SkillFields
from game_of_life.modules.tasks.schemas import Task, TaskFields


def run(engine, query):
    return asyncio.run(execute(engine, query))


def _table_names(engine):
    with engine.connect() as conn:
        rows = conn.execute(
            text("SELECT name FROM sqlite_master WHERE type='table' AND name IN ('character','skill','task')")
        ).fetchall()
    return sorted(r[0] for r in rows)


def test_foreign_keys_are_enabled_on_every_checkout(engine):
    for _ in range(3):
        with engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1


def test_scenario_ada_logic_theorem(engine, clock, ada, logic, theorem):
    character = expect(run(engine, q.CreateCharacter(fields=ada)), Character)
    assert character.id == 1

    skill = expect(run(engine, q.CreateCharacterSkill(character_id=1, fields=logic)), Skill)
    assert skill.id == 1
    after_skill = expect(run(engine, q.GetCharacter(id=1)), Character)
    assert after_skill.updated_at == skill.created_at > character.updated_at

    task = expect(run(engine, q.CreateSkillTask(skill_id=1, fields=theorem)), Task)
    assert task.id == 1
    assert expect(run(engine, q.GetSkill(id=1)), Skill).updated_at == task.created_at
    assert expect(run(engine, q.GetCharacter(id=1)), Character).updated_at == task.created_at

    assert isinstance(run(engine, q.DeleteSkill(id=1)), q.Success)
    with pytest.raises(NotFound):
        run(engine, q.GetTask(id=1))
    assert expect(run(engine, q.GetCharacter(id=1)), Character).updated_at > task.created_at


def test_character_task_list_requires_character(engine):
    with pytest.raises(NotFound):
        run(engine, q.GetCharacterTaskList(character_id=999))
    with pytest.raises(NotFound):
        run(engine, q.GetCharacterSkillList(character_id=999))
    with pytest.raises(NotFound):
        run(engine, q.GetSkillTaskList(skill_id=999))


def test_character_task_list_is_ordered_by_skill_then_task(engine, ada):
    run(engine, q.CreateCharacter(fields=ada))
    other = expect(run(engine, q.CreateCharacter(fields=ada)), Character)
    run(engine, q.CreateCharacterSkill(character_id=1, fields=SkillFields(name="Logic", progress=0, level=1)))
    run(engine, q.CreateCharacterSkill(character_id=1, fields=SkillFields(name="Poetry", progress=0, level=1)))
    run(engine, q.CreateCharacterSkill(character_id=other.id, fields=SkillFields(name="Other", progress=0, level=1)))

    def add(skill_id, name):
        return expect(run(engine, q.CreateSkillTask(skill_id=skill_id, fields=TaskFields(name=name, description="", completed=0))), Task)

    a = add(1, "a")
    b = add(2, "b")
    c = add(1, "c")
    add(3, "elsewhere")

    result = expect(run(engine, q.GetCharacterTaskList(character_id=1)), q.TaskListResult)
    assert [t.id for t in result.items] == [a.id, c.id, b.id]


def test_empty_character_has_empty_lists(engine, ada):
    run(engine, q.CreateCharacter(fields=ada))
    assert expect(run(engine, q.GetCharacterSkillList(character_id=1)), q.SkillListResult).items == []
    assert expect(run(engine, q.GetCharacterTaskList(character_id=1)), q.TaskListResult).items == []


def test_update_and_delete_missing_are_not_found(engine, ada, logic, theorem):
    for query in (
        q.UpdateCharacter(id=5, fields=ada),
        q.UpdateSkill(id=5, fields=logic),
        q.UpdateTask(id=5, fields=theorem),
        q.DeleteCharacter(id=5),
        q.DeleteSkill(id=5),
        q.DeleteTask(id=5),
        q.GetCharacter(id=5),
        q.GetSkill(id=5),
        q.GetTask(id=5),
    ):
        with pytest.raises(NotFound):
            run(engine, query)


def test_reset_database_is_idempotent(engine, ada, logic, theorem):
    run(engine, q.CreateCharacter(fields=ada))
    run(engine, q.CreateCharacterSkill(character_id=1, fields=logic))
    run(engine, q.CreateSkillTask(skill_id=1, fields=theorem))

    for _ in range(2):
        assert isinstance(run(engine, q.ResetDatabase()), q.Success)
        assert expect(run(engine, q.GetCharacterList()), q.CharacterListResult).items == []
        assert expect(run(engine, q.GetSkillList()), q.SkillListResult).items == []
        assert expect(run(engine, q.GetTaskList()), q.TaskListResult).items == []
        assert _table_names(engine) == ["character", "skill", "task"]


def test_storage_error_names_the_operation(engine, logic):
    with pytest.raises(DatabaseError) as ei:
        run(engine, q.CreateCharacterSkill(character_id=42, fields=logic))
    assert "in create_skill" in str(ei.value)
    assert "FOREIGN KEY" in str(ei.value)
    assert ei.value.status_code == 500


def test_failed_cascade_rolls_back_the_whole_operation(engine, monkeypatch, ada, logic, theorem):
    run(engine, q.CreateCharacter(fields=ada))
    skill = expect(run(engine, q.CreateCharacterSkill(character_id=1, fields=logic)), Skill)

    def broken_touch(conn, character_id, timestamp):
        raise ConsistencyError("touch failed")

    monkeypatch.setattr("game_of_life.modules.tasks.repository.touch_character", broken_touch)

    with pytest.raises(InternalError):
        run(engine, q.CreateSkillTask(skill_id=skill.id, fields=theorem))

    assert expect(run(engine, q.GetTaskList()), q.TaskListResult).items == []
    assert expect(run(engine, q.GetSkill(id=skill.id)), Skill).updated_at == skill.updated_at


def test_pool_exhaustion_is_service_unavailable(db_url):
    eng = db.create_db_engine(db_url, pool_size=1, pool_timeout=0.1)
    try:
        with eng.begin() as conn:
            db.create_tables(conn)
        with eng.connect():
            with pytest.raises(ServiceUnavailable):
                execute_blocking(eng, q.GetCharacterList())
    finally:
        eng.dispose()


def test_locked_database_is_retryable(engine, db_url, ada):
    contender = db.create_db_engine(db_url, busy_timeout=0)
    try:
        with engine.begin() as conn:
            characters.create_character(conn, ada)
            with pytest.raises(DatabaseBusy) as ei:
                execute_blocking(contender, q.CreateCharacter(fields=ada))
    finally:
        contender.dispose()

    assert ei.value.retryable
    assert ei.value.status_code == 503
    assert "in create_character" in str(ei.value)


def test_expect_rejects_unexpected_result_shape():
    with pytest.raises(InternalError):
        expect(q.Success(), Character)


def test_read_then_write_waits_for_a_held_write_lock(engine, ada, logic, theorem):
    run(engine, q.CreateCharacter(fields=ada))
    run(engine, q.CreateCharacterSkill(character_id=1, fields=logic))
    task = expect(run(engine, q.CreateSkillTask(skill_id=1, fields=theorem)), Task)

    locked = threading.Event()

    def hold_write_lock():
        with engine.begin() as conn:
            characters.create_character(conn, ada)
            locked.set()
            time.sleep(0.3)

    holder = threading.Thread(target=hold_write_lock)
    holder.start()
    try:
        assert locked.wait(5)
        # delete_task looks up the parents before it deletes
        result = execute_blocking(engine, q.DeleteTask(id=task.id))
    finally:
        holder.join()

    assert isinstance(result, q.Success)
    assert expect(run(engine, q.GetTaskList()), q.TaskListResult).items == []
    assert len(expect(run(engine, q.GetCharacterList()), q.CharacterListResult).items) == 2


def test_only_writers_take_the_write_lock_at_begin(engine, ada):
    statements = []

    def record(conn, cursor, statement, *args):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", record)
    try:
        run(engine, q.GetCharacterList())
        run(engine, q.CreateCharacter(fields=ada))
    finally:
        event.remove(engine, "before_cursor_execute", record)

    assert [s for s in statements if s.startswith("BEGIN")] == ["BEGIN", "BEGIN IMMEDIATE"]
