"""Deadline guard for awaitables."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from popbox.exceptions import ConnectionTimeoutError

T = TypeVar("T")

# 30000 ms, applied to the TLS handshake and to the greeting
DEFAULT_TIMEOUT = 30.0


async def with_timeout(aw: Awaitable[T], timeout: float, operation: str) -> T:
    """Await ``aw`` and fail if it does not finish within ``timeout`` seconds.

    asyncio.wait_for owns the deadline timer, so it is released on every
    exit path. The awaited operation is cancelled when the deadline fires.

    Args:
        aw: The operation to wait for.
        timeout: Deadline in seconds.
        operation: Name used in the error, e.g. "connect" or "greeting".

    Returns:
        The result of ``aw``.

    Raises:
        ConnectionTimeoutError: If the deadline passes first.
    """
    try:
        return await asyncio.wait_for(aw, timeout=timeout)
    except asyncio.TimeoutError:
        raise ConnectionTimeoutError(operation, timeout) from None
