"""
JSON helpers backed by orjson
=============================

Thin str-returning wrappers so callers can use a json-module-like interface
while serialization goes through orjson. Output is always UTF-8; there is no
ASCII escaping mode.
"""

import orjson
from typing import Any, Callable, Optional


def dumps(
    obj: Any,
    indent: Optional[int] = None,
    default: Optional[Callable[[Any], Any]] = None,
) -> str:
    """
    Serialize obj to a JSON string.

    Args:
        obj: Object to serialize
        indent: Any non-None value pretty prints with two spaces (orjson limit)
        default: Callable for objects orjson cannot serialize natively

    Returns:
        JSON string
    """
    option = 0
    if indent is not None:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, default=default, option=option).decode("utf-8")


def loads(s: Any) -> Any:
    """Deserialize a JSON string or bytes."""
    return orjson.loads(s)


JSONDecodeError = orjson.JSONDecodeError
