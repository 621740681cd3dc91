"""
Concurrent read fan-out.

Insight, trend and report operations issue several independent queries.
``run_reads`` runs them concurrently, one session each, inside an
``asyncio.TaskGroup``: the first failure cancels the remaining reads and is
re-raised as-is, so callers never see a partially populated result.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict

import structlog
from prometheus_client import Histogram
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = structlog.get_logger(__name__)

ReadFn = Callable[[AsyncSession], Awaitable[Any]]

FANOUT_SECONDS = Histogram(
    "analytics_read_fanout_seconds",
    "Time spent running the concurrent reads of one operation",
    ["operation"],
)


async def _run_read(session_factory: async_sessionmaker[AsyncSession], read: ReadFn) -> Any:
    async with session_factory() as session:
        return await read(session)


async def run_reads(
    session_factory: async_sessionmaker[AsyncSession],
    operation: str,
    reads: Dict[str, ReadFn],
) -> Dict[str, Any]:
    """
    Run independent reads concurrently and join their results.

    Args:
        session_factory: Factory opening one session per read
        operation: Name used in logs and metrics
        reads: Mapping of result name to read coroutine function

    Returns:
        Mapping of result name to the read's return value

    Example:
        results = await run_reads(factory, "insights", {
            "reviews": lambda s: fetch_reviews(s, business_id, window),
            "favorites": lambda s: count_favorites(s, business_id, window),
        })
    """
    started = time.perf_counter()
    try:
        async with asyncio.TaskGroup() as group:
            tasks = {
                name: group.create_task(_run_read(session_factory, read), name=f"{operation}:{name}")
                for name, read in reads.items()
            }
    except BaseExceptionGroup as failures:
        first = failures.exceptions[0]
        logger.error(
            "Concurrent read failed",
            operation=operation,
            failed_reads=len(failures.exceptions),
            error=str(first),
            error_type=type(first).__name__,
        )
        raise first

    elapsed = time.perf_counter() - started
    FANOUT_SECONDS.labels(operation=operation).observe(elapsed)
    logger.debug("Concurrent reads joined", operation=operation, reads=len(tasks), duration_ms=round(elapsed * 1000, 2))
    return {name: task.result() for name, task in tasks.items()}
