"""
Deadline helpers for every external call.

Each DNS, RDAP, WHOIS, provider or probe call is raced against a deadline.
When the deadline wins, the caller gets the fallback value and the pending
operation is cancelled; its eventual result is never observed.
"""

import asyncio
import logging
from typing import Awaitable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_timeout(operation: Awaitable[T], seconds: float, fallback: T) -> T:
    """
    Return the operation's result, or `fallback` if `seconds` elapse first.

    Exceptions raised by the operation before the deadline propagate so the
    caller can decide how to degrade.
    """
    try:
        return await asyncio.wait_for(operation, timeout=seconds)
    except asyncio.TimeoutError:
        return fallback


async def best_effort(operation: Awaitable[T], seconds: float, fallback: T, *, what: str = "lookup") -> T:
    """Like `with_timeout`, but any failure also degrades to `fallback`."""
    try:
        return await with_timeout(operation, seconds, fallback)
    except Exception as exc:
        logger.debug(f"{what} failed: {exc!r}")
        return fallback
