"""Asyncio helpers shared by the authorization pipeline."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, List, Optional

logger = logging.getLogger(__name__)


async def gather_fail_fast(*aws: Awaitable[Any]) -> List[Any]:
    """Run *aws* concurrently and return their results in order.

    As soon as one of them raises, the others are cancelled and that
    exception is re-raised.  If the caller is cancelled, every child is
    cancelled too.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []

    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise

    failure: Optional[BaseException] = None
    for task in tasks:
        if task in done and not task.cancelled():
            exc = task.exception()
            if exc is not None and failure is None:
                failure = exc

    if failure is not None:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.debug("Cancelled %d pending task(s) after a failure.", len(pending))
        raise failure

    return [task.result() for task in tasks]
