"""
Auto-Fix Service — Entry point for webhook and manual triggers.

dedup guard → pipeline → outcome recorded onto the analysis run.
"""

from __future__ import annotations

import logging
from typing import Protocol

from codepolice.engine.dedup import TriggerDeduplicator
from codepolice.engine.pipeline import AutoFixPipeline
from codepolice.models.autofix_models import AutoFixInput, AutoFixRecord, AutoFixResult
from codepolice.utils.best_effort import best_effort

logger = logging.getLogger("codepolice.engine.service")


class RunRecorder(Protocol):
    """Externally-owned analysis-run store; only the result shape is ours."""

    async def record(self, analysis_run_id: str, record: AutoFixRecord) -> None: ...


class AutoFixService:
    def __init__(
        self,
        pipeline: AutoFixPipeline,
        deduplicator: TriggerDeduplicator,
        recorder: RunRecorder | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.deduplicator = deduplicator
        self.recorder = recorder

    async def trigger(self, project_id: str, fix_input: AutoFixInput) -> AutoFixResult | None:
        """
        Run auto-fix for one (project, commit) trigger.

        Returns None when the trigger is a duplicate inside the dedup window.
        """
        if not self.deduplicator.should_process(project_id, fix_input.commit_sha):
            return None

        try:
            result = await self.pipeline.generate_and_create_fix_pr(fix_input)
        except Exception as e:
            logger.exception(f"Auto-fix failed for run {fix_input.analysis_run_id}: {e}")
            result = AutoFixResult(success=False, error=str(e) or "Auto-fix failed")

        if result.success:
            logger.info(f"Auto-fix PR created: {result.pr_url}")
        else:
            logger.info(f"Auto-fix did not create PR: {result.error}")

        if self.recorder is not None:
            recorder = self.recorder
            await best_effort(
                "record auto-fix outcome",
                lambda: recorder.record(
                    fix_input.analysis_run_id, AutoFixRecord.from_result(result)
                ),
                log=logger,
            )
        return result
