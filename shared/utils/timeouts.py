"""Bounded waiting on external calls."""

import asyncio
from typing import Awaitable, Optional, TypeVar

from .errors import OperationTimeoutError

T = TypeVar("T")


async def call_with_timeout(awaitable: Awaitable[T], timeout: Optional[float], operation: str) -> T:
    """
    Await ``awaitable`` for at most ``timeout`` seconds.

    Expiry cancels the call and raises :class:`OperationTimeoutError`, so a
    stalled dependency is reported instead of blocking forever. ``None``
    disables the bound.
    """
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise OperationTimeoutError(
            f"{operation} timed out after {timeout}s",
            timeout_seconds=timeout,
            operation=operation,
        ) from e
