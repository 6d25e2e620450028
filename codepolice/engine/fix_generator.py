"""
Fix Generator — Oracle-driven fix generation with retry and fallback.

Per file:
1. Empty issue list → no oracle call, no fixes
2. Attempt 1: precise prompt, low temperature
3. Attempts 2..N: urgent retry prompt, higher temperature
4. Any exception or malformed response counts as zero fixes
5. All attempts empty → deterministic fallback fixes for every issue
6. Oracle fixed only some issues → fallback fills in the rest
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from codepolice.config import settings
from codepolice.llm.fallback import create_fallback_fixes
from codepolice.llm.fix_prompt_builder import build_fix_prompt
from codepolice.llm.response_validator import validate_fix_response
from codepolice.models.fix_models import Fix, FixOutput, MalformedResponse
from codepolice.models.issue_models import Issue

logger = logging.getLogger("codepolice.engine.fix_generator")


class FixOracle(Protocol):
    """Anything that turns a prompt into a parsed JSON response (LLMGateway)."""

    async def complete(self, prompt: str, temperature: float = 0.1) -> dict[str, Any]:
        ...


class FixGenerator:
    """Generates fixes for one file's issues; never raises for "no fixes"."""

    def __init__(
        self,
        oracle: FixOracle | None,
        max_attempts: int | None = None,
        precise_temperature: float | None = None,
        retry_temperature: float | None = None,
    ) -> None:
        self.oracle = oracle
        self.max_attempts = max_attempts if max_attempts is not None else settings.fix_attempts
        self.precise_temperature = (
            precise_temperature
            if precise_temperature is not None
            else settings.fix_temperature_precise
        )
        self.retry_temperature = (
            retry_temperature
            if retry_temperature is not None
            else settings.fix_temperature_retry
        )

    async def generate_fixes(
        self,
        file_content: str,
        file_path: str,
        language: str,
        issues: list[Issue],
    ) -> FixOutput:
        if not issues:
            return FixOutput()

        logger.info(f"Starting fix generation for {file_path} ({len(issues)} issues)")

        for attempt in range(1, self.max_attempts + 1):
            fixes = await self._attempt(file_content, file_path, language, issues, attempt)
            if fixes:
                logger.info(
                    f"{file_path}: generated {len(fixes)} fixes on attempt {attempt}"
                )
                return self._fill_missing(
                    FixOutput(fixes=fixes, attempts=attempt),
                    file_content,
                    file_path,
                    language,
                    issues,
                )
            if attempt < self.max_attempts:
                logger.warning(f"{file_path}: attempt {attempt} returned 0 fixes, retrying")

        logger.warning(f"{file_path}: all oracle attempts failed, creating fallback fixes")
        return FixOutput(
            fixes=create_fallback_fixes(file_content, file_path, issues, language),
            attempts=self.max_attempts,
            used_fallback=True,
        )

    async def _attempt(
        self,
        file_content: str,
        file_path: str,
        language: str,
        issues: list[Issue],
        attempt: int,
    ) -> list[Fix]:
        """One oracle round-trip. Failures collapse to an empty list."""
        if self.oracle is None:
            return []

        prompt = build_fix_prompt(file_content, file_path, language, issues, attempt)
        temperature = self.precise_temperature if attempt == 1 else self.retry_temperature

        try:
            response = await self.oracle.complete(prompt, temperature=temperature)
        except Exception as e:
            logger.error(f"{file_path}: attempt {attempt} oracle error: {e}")
            return []

        parsed = response.get("parsed") if isinstance(response, dict) else None
        result = validate_fix_response(parsed, issues, file_path)
        if isinstance(result, MalformedResponse):
            logger.warning(
                f"{file_path}: attempt {attempt} malformed response: {result.reason}"
            )
            return []
        return result.fixes

    def _fill_missing(
        self,
        output: FixOutput,
        file_content: str,
        file_path: str,
        language: str,
        issues: list[Issue],
    ) -> FixOutput:
        covered = {fix.issue_id for fix in output.fixes}
        missing = [issue for issue in issues if issue.id not in covered]
        if missing:
            logger.info(
                f"{file_path}: oracle skipped {len(missing)} issues, adding fallback fixes"
            )
            output.fixes.extend(
                create_fallback_fixes(file_content, file_path, missing, language)
            )
            output.used_fallback = True
        return output


def generate_commit_message(fixes: list[Fix]) -> str:
    """Commit message for a set of fixes."""
    if not fixes:
        return "fix: automated code quality improvements"

    if len(fixes) == 1:
        fix = fixes[0]
        return f"fix({fix.file_path.split('/')[-1]}): {fix.explanation[:50]}"

    file_count = len({f.file_path for f in fixes})
    plural = "s" if file_count > 1 else ""
    return f"fix: automated fixes for {len(fixes)} issues across {file_count} file{plural}"
