import itertools
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

API_DIR = Path(__file__).resolve().parents[1]
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

from game_of_life.core import db  # noqa: E402
from game_of_life.main import app  # noqa: E402
from game_of_life.modules.characters.schemas import CharacterFields  # noqa: E402
from game_of_life.modules.skills.schemas import SkillFields  # noqa: E402
from game_of_life.modules.tasks.schemas import TaskFields  # noqa: E402


@pytest.fixture
def db_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    url = "sqlite:///" + (tmp_path / "game_of_life.db").as_posix()
    monkeypatch.setenv("DATABASE_URL", url)
    return url


@pytest.fixture
def engine(db_url: str):
    eng = db.create_db_engine(db_url, pool_size=2, pool_timeout=1.0, busy_timeout=1.0)
    with eng.begin() as conn:
        db.create_tables(conn)
    yield eng
    eng.dispose()


@pytest.fixture
def conn(engine):
    with engine.begin() as c:
        yield c


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch):
    """Deterministic, strictly increasing now_ms() for every repository."""
    ticks = itertools.count(1_000, 1_000)

    def _now() -> int:
        return next(ticks)

    for module in (
        "game_of_life.modules.characters.repository",
        "game_of_life.modules.skills.repository",
        "game_of_life.modules.tasks.repository",
    ):
        monkeypatch.setattr(f"{module}.now_ms", _now)
    return ticks


@pytest.fixture
def client(engine):
    app.dependency_overrides[db.get_engine] = lambda: engine
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def ada() -> CharacterFields:
    return CharacterFields(name="Ada", avatar="ada.png", notes="", quote="The engine weaves patterns.")


@pytest.fixture
def logic() -> SkillFields:
    return SkillFields(name="Logic", progress=0, level=1)


@pytest.fixture
def theorem() -> TaskFields:
    return TaskFields(name="Prove theorem", description="", completed=0)
