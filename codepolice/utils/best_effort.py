"""
Best-effort side effects — non-critical calls whose failure is logged, never raised.

Used for PR labels, tier-2 cache writes and run-outcome records. The caller gets a
SideEffectResult back and may inspect it, but never has to catch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger("codepolice.utils.best_effort")


@dataclass
class SideEffectResult:
    """Outcome of a best-effort call."""

    name: str
    ok: bool
    value: Any = None
    error: str | None = None


async def best_effort(
    name: str,
    call: Callable[[], Awaitable[T]],
    log: logging.Logger | None = None,
) -> SideEffectResult:
    """Await ``call()``; on any exception log a warning and return ok=False."""
    try:
        value = await call()
    except Exception as e:
        (log or logger).warning(f"Best-effort '{name}' failed: {e}")
        return SideEffectResult(name=name, ok=False, error=str(e))
    return SideEffectResult(name=name, ok=True, value=value)

