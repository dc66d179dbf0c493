from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.engine import Engine

from game_of_life.core.db import get_engine

from .queries import ResetDatabase, Success
from .service import execute, expect

router = APIRouter(tags=["admin"])


@router.post("/reset_db", response_class=PlainTextResponse, status_code=201)
async def api_reset_db(engine: Engine = Depends(get_engine)) -> PlainTextResponse:
    # destructive: every character, skill and task is gone after this
    result = await execute(engine, ResetDatabase())
    expect(result, Success)
    return PlainTextResponse("db is reset", status_code=201)
