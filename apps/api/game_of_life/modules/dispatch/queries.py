"""
The closed set of database operations the API can ask for.

Each query is a frozen dataclass; `Query` is their union and `execute()` in
service.py matches on it exhaustively. `op_name` is the operation name used in
database error messages and log events.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, List, Union

from game_of_life.modules.characters.schemas import Character, CharacterFields
from game_of_life.modules.skills.schemas import Skill, SkillFields
from game_of_life.modules.tasks.schemas import Task, TaskFields


# --- characters ---
@dataclass(frozen=True)
class GetCharacterList:
    op_name: ClassVar[str] = "get_character_list"


@dataclass(frozen=True)
class GetCharacter:
    id: int
    op_name: ClassVar[str] = "get_character"


@dataclass(frozen=True)
class GetCharacterSkillList:
    character_id: int
    op_name: ClassVar[str] = "get_character_skill_list"


@dataclass(frozen=True)
class CreateCharacterSkill:
    character_id: int
    fields: SkillFields
    op_name: ClassVar[str] = "create_skill"


@dataclass(frozen=True)
class GetCharacterTaskList:
    character_id: int
    op_name: ClassVar[str] = "get_character_task_list"


@dataclass(frozen=True)
class CreateCharacter:
    fields: CharacterFields
    op_name: ClassVar[str] = "create_character"


@dataclass(frozen=True)
class UpdateCharacter:
    id: int
    fields: CharacterFields
    op_name: ClassVar[str] = "update_character"


@dataclass(frozen=True)
class DeleteCharacter:
    id: int
    op_name: ClassVar[str] = "delete_character"


# --- skills ---
@dataclass(frozen=True)
class GetSkillList:
    op_name: ClassVar[str] = "get_skill_list"


@dataclass(frozen=True)
class GetSkill:
    id: int
    op_name: ClassVar[str] = "get_skill"


@dataclass(frozen=True)
class GetSkillTaskList:
    skill_id: int
    op_name: ClassVar[str] = "get_skill_task_list"


@dataclass(frozen=True)
class CreateSkillTask:
    skill_id: int
    fields: TaskFields
    op_name: ClassVar[str] = "create_task"


@dataclass(frozen=True)
class UpdateSkill:
    id: int
    fields: SkillFields
    op_name: ClassVar[str] = "update_skill"


@dataclass(frozen=True)
class DeleteSkill:
    id: int
    op_name: ClassVar[str] = "delete_skill"


# --- tasks ---
@dataclass(frozen=True)
class GetTaskList:
    op_name: ClassVar[str] = "get_task_list"


@dataclass(frozen=True)
class GetTask:
    id: int
    op_name: ClassVar[str] = "get_task"


@dataclass(frozen=True)
class UpdateTask:
    id: int
    fields: TaskFields
    op_name: ClassVar[str] = "update_task"


@dataclass(frozen=True)
class DeleteTask:
    id: int
    op_name: ClassVar[str] = "delete_task"


# --- admin ---
@dataclass(frozen=True)
class ResetDatabase:
    """Empty every table and recreate the schema. Irreversible."""

    op_name: ClassVar[str] = "reset_db"


Query = Union[
    GetCharacterList,
    GetCharacter,
    GetCharacterSkillList,
    CreateCharacterSkill,
    GetCharacterTaskList,
    CreateCharacter,
    UpdateCharacter,
    DeleteCharacter,
    GetSkillList,
    GetSkill,
    GetSkillTaskList,
    CreateSkillTask,
    UpdateSkill,
    DeleteSkill,
    GetTaskList,
    GetTask,
    UpdateTask,
    DeleteTask,
    ResetDatabase,
]

# queries that write; they open their transaction with BEGIN IMMEDIATE
WRITE_QUERIES = (
    CreateCharacterSkill,
    CreateCharacter,
    UpdateCharacter,
    DeleteCharacter,
    CreateSkillTask,
    UpdateSkill,
    DeleteSkill,
    UpdateTask,
    DeleteTask,
    ResetDatabase,
)


# --- results ---
@dataclass(frozen=True)
class CharacterListResult:
    items: List[Character]


@dataclass(frozen=True)
class SkillListResult:
    items: List[Skill]


@dataclass(frozen=True)
class TaskListResult:
    items: List[Task]


@dataclass(frozen=True)
class Success:
    pass


QueryResult = Union[
    CharacterListResult,
    Character,
    SkillListResult,
    Skill,
    TaskListResult,
    Task,
    Success,
]
