"""
Trigger Deduplicator — Skips repeat triggers for the same (project, commit).

A webhook redelivery or a double manual trigger within the window must not
spend oracle calls twice or open two PRs for the same input.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from codepolice.config import settings

logger = logging.getLogger("codepolice.engine.dedup")


class TriggerDeduplicator:
    """In-process record of recent (project_id, commit_sha) triggers."""

    def __init__(
        self,
        window_seconds: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = (
            window_seconds if window_seconds is not None else settings.dedup_window_seconds
        )
        self._clock = clock
        self._seen: dict[tuple[str, str], float] = {}

    def _prune(self, now: float) -> None:
        expired = [k for k, ts in self._seen.items() if now - ts >= self.window_seconds]
        for key in expired:
            del self._seen[key]

    def should_process(self, project_id: str, commit_sha: str) -> bool:
        """
        Record the trigger and return True, or return False for a duplicate.

        Check-and-record happens without an await in between, so two
        concurrent triggers on one event loop cannot both pass.
        """
        now = self._clock()
        self._prune(now)
        key = (project_id, commit_sha)
        if key in self._seen:
            logger.info(
                f"Duplicate trigger for project {project_id} commit {commit_sha[:7]}, skipping"
            )
            return False
        self._seen[key] = now
        return True

    def clear(self) -> None:
        self._seen.clear()
