from contextlib import asynccontextmanager
import os

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from game_of_life.core import db
from game_of_life.core.errors import AppError, InternalError, ValidationError
from game_of_life.core.observability import bind_request_id, emit, reset_request_id
from game_of_life.modules.characters.router import router as characters_router
from game_of_life.modules.dispatch.router import router as dispatch_router
from game_of_life.modules.skills.router import router as skills_router
from game_of_life.modules.tasks.router import router as tasks_router

APP_VERSION = os.getenv("APP_VERSION", "0.1.0")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:4000").split(",") if o.strip()]


@asynccontextmanager
async def lifespan(_: FastAPI):
    # one pool per process; tables are created if absent
    engine = db.get_engine()
    with engine.begin() as conn:
        db.create_tables(conn)
    try:
        yield
    finally:
        db.dispose_engine()


app = FastAPI(title="Game of Life API", version=APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)

# === OBSERVABILITY ===
# - X-Request-Id in/out (missing -> generated; always echoed back; also on errors)
# - errors are plaintext, status from the AppError taxonomy
import uuid


def _plain_error(exc: AppError, request: Request) -> PlainTextResponse:
    rid = getattr(request.state, "request_id", None)
    headers = dict(exc.headers())
    if rid:
        headers["X-Request-Id"] = rid
    return PlainTextResponse(exc.public_message(), status_code=exc.status_code, headers=headers)


@app.middleware("http")
async def _request_id_mw(request: Request, call_next):
    rid = request.headers.get("X-Request-Id") or uuid.uuid4().hex.upper()
    request.state.request_id = rid
    token = bind_request_id(rid)
    emit("info", "http.request.start", f"{request.method} {request.url.path}", rid, __name__)
    try:
        resp = await call_next(request)
    except Exception as e:
        emit("error", "http.request.exception", str(e), rid, __name__)
        raise
    finally:
        reset_request_id(token)
    resp.headers["X-Request-Id"] = rid
    emit("info", "http.request.end", f"{request.method} {request.url.path} -> {getattr(resp,'status_code',None)}", rid, __name__)
    return resp


@app.exception_handler(AppError)
async def _app_error_handler(request: Request, exc: AppError):
    return _plain_error(exc, request)


@app.exception_handler(RequestValidationError)
async def _validation_exc_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    loc = errors[0].get("loc", ()) if errors else ()
    field = str(loc[-1]) if loc else "body"
    return _plain_error(ValidationError(field), request)


@app.exception_handler(StarletteHTTPException)
async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
    rid = getattr(request.state, "request_id", None)
    headers = {"X-Request-Id": rid} if rid else None
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=headers)


@app.exception_handler(Exception)
async def _unhandled_exc_handler(request: Request, exc: Exception):
    rid = getattr(request.state, "request_id", None)
    emit("error", "http.request.unhandled", str(exc), rid, __name__, type=type(exc).__name__)
    return _plain_error(InternalError(), request)
# === END OBSERVABILITY ===


app.include_router(characters_router, prefix="/api")
app.include_router(skills_router, prefix="/api")
app.include_router(tasks_router, prefix="/api")
app.include_router(dispatch_router, prefix="/api")


@app.get("/health")
def health(engine: Engine = Depends(db.get_engine)):
    return {
        "status": "ok",
        "version": APP_VERSION,
        "db": db.db_health(engine),
    }
