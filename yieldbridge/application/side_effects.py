"""
Named policies for fire-and-forget side effects.

Every call site that may fail without failing its caller names its policy:

- BEST_EFFORT: log the failure and continue (auto-reconnect, releasing a
  wallet session, rolling back a half-finished initialization).
- MUST_REPORT: log and re-raise to the caller (releasing the session on an
  explicit wallet disconnect).
"""

from __future__ import annotations
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from ..utils.logging_setup import get_logger


logger = get_logger(__name__)

T = TypeVar("T")


class SideEffectPolicy(Enum):
    BEST_EFFORT = "best_effort"
    MUST_REPORT = "must_report"


async def run_side_effect(
    name: str,
    policy: SideEffectPolicy,
    fn: Callable[[], Awaitable[T]],
) -> Optional[T]:
    """
    Await ``fn()`` under ``policy``.

    Args:
        name: Short description used in log lines (e.g. "release keplr session").
        policy: What to do when ``fn`` raises.
        fn: Zero-argument coroutine function.

    Returns:
        The result of ``fn``, or None when a BEST_EFFORT side effect failed.
    """
    try:
        return await fn()
    except Exception as e:
        if policy is SideEffectPolicy.MUST_REPORT:
            logger.error(f"Side effect '{name}' failed: {e}")
            raise
        logger.warning(f"Best-effort side effect '{name}' failed: {type(e).__name__}: {e}")
        return None
