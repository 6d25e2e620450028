"""
Auto-Fix Pipeline — Coordinates fix generation and PR creation for one run.

Pipeline:
1. Filter issues by severity
2. Group issues by file
3. Per file (bounded concurrency): fetch content at the analysed commit,
   generate fixes (oracle or fallback), apply them bottom-up
4. Publish all changed files as one pull request

A failing file is recorded as "{path}: {message}" and never aborts the run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from codepolice.cache.batch import process_batch
from codepolice.config import settings
from codepolice.engine.fix_generator import FixGenerator
from codepolice.engine.patch_applier import combine_fixes
from codepolice.models.autofix_models import (
    DIAGNOSIS_MESSAGES,
    AutoFixDiagnosis,
    AutoFixInput,
    AutoFixResult,
)
from codepolice.models.fix_models import FilePatchResult, Fix
from codepolice.models.issue_models import Issue
from codepolice.scm.github_client import GitHubClient
from codepolice.scm.pr_creator import PRCreator
from codepolice.utils.language import detect_language

logger = logging.getLogger("codepolice.engine.pipeline")

NO_MATCHING_ISSUES_ERROR = "No issues match the severity filter for auto-fix"


@dataclass
class FileOutcome:
    """What happened to one file during a run."""

    path: str
    fixes: list[Fix] = field(default_factory=list)
    patch: FilePatchResult | None = None
    error: str | None = None
    fetch_failed: bool = False

    @property
    def changed_content(self) -> str | None:
        if self.patch is not None and self.patch.changed:
            return self.patch.new_content
        return None


def group_issues_by_file(issues: list[Issue]) -> dict[str, list[Issue]]:
    """Group preserving first-seen file order."""
    grouped: dict[str, list[Issue]] = {}
    for issue in issues:
        grouped.setdefault(issue.file_path, []).append(issue)
    return grouped


def diagnose_no_changes(outcomes: list[FileOutcome], fixes_generated: int) -> AutoFixDiagnosis:
    """Classify a run that produced zero file changes."""
    if outcomes and all(o.fetch_failed for o in outcomes):
        return AutoFixDiagnosis.ALL_FETCH_FAILED
    if any(o.error for o in outcomes if not o.fixes):
        return AutoFixDiagnosis.PARTIAL_FAILURE
    if fixes_generated > 0:
        return AutoFixDiagnosis.FIXES_UNCHANGED
    return AutoFixDiagnosis.NO_FIXES


class AutoFixPipeline:
    """
    Per-trigger coordinator.

    ``client_factory`` builds a source-control client from the trigger's
    token; it must provide fetch_file_content plus the PRCreator operations.
    """

    def __init__(
        self,
        fix_generator: FixGenerator,
        client_factory: Callable[[str], object] = GitHubClient,
        concurrency: int | None = None,
    ) -> None:
        self.fix_generator = fix_generator
        self.client_factory = client_factory
        self.concurrency = concurrency if concurrency is not None else settings.batch_concurrency

    async def generate_and_create_fix_pr(self, fix_input: AutoFixInput) -> AutoFixResult:
        start_time = time.monotonic()
        severity_filter = (
            fix_input.severity_filter
            if fix_input.severity_filter is not None
            else settings.autofix_severity_filter
        )
        short_sha = fix_input.commit_sha[:7]

        logger.info(
            f"Auto-fix starting for {fix_input.owner}/{fix_input.repo}@{short_sha}: "
            f"{len(fix_input.issues)} issues, severity filter {severity_filter}"
        )

        fixable = [i for i in fix_input.issues if i.severity.value in severity_filter]
        if not fixable:
            logger.info("No issues match severity filter, skipping")
            return AutoFixResult(success=False, error=NO_MATCHING_ISSUES_ERROR)

        issues_by_file = group_issues_by_file(fixable)
        logger.info(f"{len(fixable)} fixable issues across {len(issues_by_file)} files")

        client = self.client_factory(fix_input.source_control_token)
        try:
            outcomes = await self._process_files(client, fix_input, issues_by_file)

            all_fixes = [fix for o in outcomes for fix in o.fixes]
            file_changes = {
                o.path: o.changed_content for o in outcomes if o.changed_content is not None
            }
            errors = [f"{o.path}: {o.error}" for o in outcomes if o.error]

            logger.info(
                f"Total fixes: {len(all_fixes)}, files with changes: {len(file_changes)}"
            )

            if not file_changes:
                diagnosis = diagnose_no_changes(outcomes, len(all_fixes))
                logger.warning(f"No file changes to commit ({diagnosis.value})")
                return AutoFixResult(
                    success=False,
                    fixes_generated=len(all_fixes),
                    files_changed=0,
                    error=DIAGNOSIS_MESSAGES[diagnosis],
                    errors=errors,
                    diagnosis=diagnosis,
                )

            pr_result = await PRCreator(client).create_fix_pull_request(
                owner=fix_input.owner,
                repo=fix_input.repo,
                base_branch=fix_input.branch,
                commit_sha=fix_input.commit_sha,
                fixes=all_fixes,
                issues=fixable,
                file_changes=file_changes,
            )
        finally:
            aclose = getattr(client, "aclose", None)
            if aclose is not None:
                await aclose()

        elapsed = (time.monotonic() - start_time) * 1000
        if not pr_result.success:
            logger.error(f"PR creation failed after {elapsed:.0f}ms: {pr_result.error}")
            return AutoFixResult(
                success=False,
                fixes_generated=len(all_fixes),
                files_changed=len(file_changes),
                error=pr_result.error,
                errors=errors,
            )

        logger.info(f"PR created in {elapsed:.0f}ms: {pr_result.pr_url}")
        return AutoFixResult(
            success=True,
            pr_number=pr_result.pr_number,
            pr_url=pr_result.pr_url,
            branch_name=pr_result.branch_name,
            fixes_generated=len(all_fixes),
            files_changed=len(file_changes),
            errors=errors,
        )

    async def _process_files(
        self,
        client,
        fix_input: AutoFixInput,
        issues_by_file: dict[str, list[Issue]],
    ) -> list[FileOutcome]:
        paths = list(issues_by_file)

        async def process(path: str) -> FileOutcome:
            return await self._process_file(client, fix_input, path, issues_by_file[path])

        batch = await process_batch(paths, process, concurrency=self.concurrency)

        # process() records its own errors; anything here escaped it
        outcomes = list(batch.results)
        for failure in batch.errors:
            outcomes.append(FileOutcome(path=paths[failure.index], error=failure.error))
        order = {path: i for i, path in enumerate(paths)}
        outcomes.sort(key=lambda o: order[o.path])
        return outcomes

    async def _process_file(
        self,
        client,
        fix_input: AutoFixInput,
        path: str,
        issues: list[Issue],
    ) -> FileOutcome:
        logger.info(f"Processing {path} ({len(issues)} issues)")

        try:
            content = await client.fetch_file_content(
                fix_input.owner,
                fix_input.repo,
                path,
                ref=fix_input.commit_sha,
                fallback_branch=fix_input.branch,
            )
        except Exception as e:
            logger.error(f"Failed to fetch {path}: {e}")
            return FileOutcome(path=path, error=str(e) or type(e).__name__, fetch_failed=True)

        try:
            output = await self.fix_generator.generate_fixes(
                content, path, detect_language(path), issues
            )
            patch = combine_fixes(path, content, output.fixes)
        except Exception as e:
            logger.error(f"Failed to process {path}: {e}")
            return FileOutcome(path=path, error=str(e) or type(e).__name__)

        outcome = FileOutcome(path=path, fixes=output.fixes, patch=patch)
        if output.fixes and not patch.changed:
            logger.warning(f"No actual changes for {path}")
            outcome.error = "Fixes generated but no changes applied"
        return outcome
