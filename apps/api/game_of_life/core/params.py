from __future__ import annotations

from typing import Annotated

from fastapi import Path

# sqlite INTEGER is a signed 64-bit value; anything larger cannot be bound
SQLITE_MAX_INT = 2**63 - 1

# path ids outside this range are rejected as a ValidationError before any query runs
RowId = Annotated[int, Path(ge=1, le=SQLITE_MAX_INT)]
