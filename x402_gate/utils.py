"""Small shared helpers."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, TypeVar, Union

T = TypeVar("T")


async def maybe_await(value: Union[T, Awaitable[T]]) -> T:
    """Await ``value`` if it is awaitable, otherwise return it as is."""
    if inspect.isawaitable(value):
        return await value
    return value


async def resolve_dynamic(value: Any, *args: Any) -> Any:
    """Call ``value`` with ``args`` if callable (sync or async), else return it."""
    if callable(value):
        return await maybe_await(value(*args))
    return value
