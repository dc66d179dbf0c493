# Structured event lines on stdout.
# - keys: ts, level, message, request_id, event, module (+ extras)
# - X-Request-Id in/out is handled in main.py, which binds it here for
#   code that runs below the request (db events)
from __future__ import annotations

import datetime
import json
import logging
import os
from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

_log = logging.getLogger("game_of_life")
if not _log.handlers:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def bind_request_id(request_id: Optional[str]) -> Token:
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def current_request_id() -> Optional[str]:
    # copied into worker threads by run_in_threadpool along with the rest of the context
    return _request_id.get()


def now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def emit(level: str, event: str, message: str, request_id: Optional[str], module: str, **extra: Any) -> None:
    if not _log.isEnabledFor(logging.getLevelName(level.upper())):
        return
    payload: Dict[str, Any] = {
        "ts": now_iso(),
        "level": level.lower(),
        "message": message,
        "request_id": request_id,
        "event": event,
        "module": module,
    }
    payload.update(extra)
    print(json.dumps(payload, ensure_ascii=False, default=str), flush=True)
