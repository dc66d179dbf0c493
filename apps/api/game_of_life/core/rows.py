from __future__ import annotations

from typing import Any, Dict, Sequence, Type, TypeVar

import pydantic
from pydantic import BaseModel

from .errors import MappingError

M = TypeVar("M", bound=BaseModel)


def row_values(row: Sequence[Any], columns: Sequence[str]) -> Dict[str, Any]:
    """Pair an ordered row with its column names; the counts must agree."""
    values = tuple(row)
    if len(values) != len(columns):
        raise MappingError(f"expected {len(columns)} columns, got {len(values)}")
    return dict(zip(columns, values))


def build(model: Type[M], data: Dict[str, Any]) -> M:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise MappingError(f"cannot map row to {model.__name__}: {e}") from e
