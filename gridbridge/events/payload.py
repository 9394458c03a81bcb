"""Projection of untyped event data onto caller-specified types."""
from functools import lru_cache
from typing import Any, TypeVar

import orjson
from pydantic import BaseModel, TypeAdapter, ValidationError

from ..errors import EventPayloadError

T = TypeVar("T")


@lru_cache(maxsize=256)
def _adapter_for(model: Any) -> TypeAdapter:
    return TypeAdapter(model)


def _type_name(model: Any) -> str:
    return getattr(model, "__name__", repr(model))


def project_payload(data: Any, model: type[T]) -> T | None:
    """
    Re-interpret event data as an instance of ``model``.

    Data that already is a ``model`` instance is returned untouched; JSON
    text (``str``/``bytes``) is validated directly; anything else is
    round-tripped through JSON before validation.

    Args:
        data: Untyped event data (decoded JSON value or typed object)
        model: Any type pydantic can validate into

    Returns:
        The projected payload, or None when there is no data

    Raises:
        EventPayloadError: If the data does not fit the requested type
    """
    if data is None:
        return None

    try:
        # bool is an int subclass but never a valid int payload
        if isinstance(data, model) and not (isinstance(data, bool) and model is not bool):
            return data
    except TypeError:
        # Parameterized generics like list[int] cannot be instance-checked
        pass

    adapter = _adapter_for(model)
    try:
        if isinstance(data, (str, bytes, bytearray)):
            return adapter.validate_json(data)
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json", by_alias=True)
        return adapter.validate_json(orjson.dumps(data))
    except (ValidationError, TypeError, orjson.JSONEncodeError) as exc:
        raise EventPayloadError(
            f"Cannot project event data onto '{_type_name(model)}': {exc}"
        ) from exc
