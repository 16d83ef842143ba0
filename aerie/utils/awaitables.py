"""Helpers for hooks that may be plain functions or coroutines."""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Generator, Optional


async def maybe_await(value: Any) -> Any:
    """Await ``value`` when it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


class Deferred:
    """
    A value computed once by ``factory`` and awaitable any number of times.

    The factory starts on first await; every awaiter shares the same task.

    Example:
        engine = Deferred(build_engine)
        await engine   # builds
        await engine   # cached result
    """

    def __init__(self, factory: Callable[[], Awaitable[Any]]):
        self._factory = factory
        self._task: Optional[asyncio.Task] = None

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def start(self) -> "asyncio.Task":
        if self._task is None:
            self._task = asyncio.ensure_future(self._factory())
        return self._task

    def __await__(self) -> Generator[Any, None, Any]:
        return self.start().__await__()
