"""Repository pattern layer for recognition rules.

Provides protocol interfaces for the rule and role stores and a resolve()
helper that transparently handles both sync (in-memory) and async (SQL)
store returns.
"""

from __future__ import annotations

import inspect
from typing import Awaitable, TypeVar

T = TypeVar("T")


async def resolve(value: T | Awaitable[T]) -> T:
    """Await a value if it is awaitable, otherwise return it directly.

    This allows callers to use any store uniformly:
        rules = await resolve(store.list_active_rules())

    In-memory stores return plain values; SQL repositories return coroutines.
    """
    if inspect.isawaitable(value):
        return await value  # type: ignore[return-value]
    return value  # type: ignore[return-value]
