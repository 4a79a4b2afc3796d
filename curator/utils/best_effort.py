"""Catch-and-degrade boundary for hot-path entry points.

Selection, trace capture, and posterior updates run inside the host's
agent turn. None of them may raise into that turn: failures are logged at
debug level and replaced by a default value.
"""

from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from curator.observability.logging import LogEvents, get_logger

P = ParamSpec("P")
T = TypeVar("T")

logger = get_logger(__name__)


async def run_best_effort(
    fn: Callable[P, Awaitable[T]],
    *args: P.args,
    **kwargs: P.kwargs,
) -> T | None:
    """Await ``fn(*args, **kwargs)``; return None instead of raising.

    Example:
        >>> trace = await run_best_effort(capture_and_store_trace, store, report=report)
        >>> if trace is None:
        ...     pass  # capture failed, the turn carries on
    """
    try:
        return await fn(*args, **kwargs)
    except Exception as e:
        logger.debug(
            LogEvents.BEST_EFFORT_FAILED,
            operation=getattr(fn, "__qualname__", repr(fn)),
            error=str(e),
            error_type=type(e).__name__,
        )
        return None
