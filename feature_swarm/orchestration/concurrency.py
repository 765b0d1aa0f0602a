"""Join-all primitive for concurrent agent fan-out."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

logger = logging.getLogger(__name__)


async def join_all(*branches: Awaitable[Any], label: str = "join") -> list[Any]:
    """Run every branch concurrently and wait for all of them.

    No branch is cancelled when another fails. Results come back in branch
    order. Agent branches cannot fail past the invoker, so an exception here
    is structural: every failure is logged once all branches have settled,
    then the first one is re-raised.

    Args:
        *branches: Awaitables to run together.
        label: Name used in log messages.

    Returns:
        Branch results in the order the branches were given.
    """
    if not branches:
        return []

    results = await asyncio.gather(*branches, return_exceptions=True)

    failures = [r for r in results if isinstance(r, BaseException)]
    for failure in failures:
        logger.warning(f"{label}: branch failed: {failure!r}")
    if failures:
        raise failures[0]

    return list(results)
