"""
PR Creator — Publishes patched files as a GitHub pull request.

Workflow (sequential, not transactional):
1. Resolve base branch SHA
2. Derive branch name from date + short commit SHA
3. Create branch
4. Commit each changed file (serially; each update needs the branch's blob SHA)
5. Open the pull request
6. Attach labels (best-effort)

Any failure in steps 1-5 aborts the rest and is returned as
PRCreationResult(success=False, error=...). A branch created before the
failure is left in place.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

from codepolice.config import settings
from codepolice.engine.fix_generator import generate_commit_message
from codepolice.models.autofix_models import FileInfo, PRCreationResult, PullRequestRef
from codepolice.models.fix_models import Fix, UnfixableIssue
from codepolice.models.issue_models import Issue, IssueCategory, Severity
from codepolice.utils.best_effort import best_effort

logger = logging.getLogger("codepolice.scm.pr_creator")

NO_CHANGES_ERROR = "No file changes to commit"


class SourceControlService(Protocol):
    """Remote operations the orchestrator needs (GitHubClient implements these)."""

    async def get_branch_ref(self, owner: str, repo: str, branch: str) -> str: ...

    async def create_branch(
        self, owner: str, repo: str, branch_name: str, from_sha: str
    ) -> None: ...

    async def get_file_info(
        self, owner: str, repo: str, path: str, branch: str
    ) -> FileInfo: ...

    async def create_or_update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        branch: str,
        file_sha: str | None = None,
    ) -> str: ...

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        head_branch: str,
        base_branch: str,
    ) -> PullRequestRef: ...

    async def add_labels(
        self, owner: str, repo: str, pr_number: int, labels: list[str]
    ) -> None: ...


def generate_fix_branch_name(
    commit_sha: str,
    now: datetime | None = None,
    prefix: str | None = None,
) -> str:
    """e.g. code-police/fix-20261019-abc1234"""
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d")
    return f"{prefix or settings.fix_branch_prefix}-{stamp}-{commit_sha[:7]}"


def generate_pr_labels(issues: list[Issue]) -> list[str]:
    labels = ["automated-fix", "code-police"]

    severities = {issue.severity for issue in issues}
    if Severity.CRITICAL in severities:
        labels.append("priority:critical")
    if Severity.HIGH in severities:
        labels.append("priority:high")

    categories = {issue.category.lower() for issue in issues}
    for category in (IssueCategory.SECURITY, IssueCategory.BUG, IssueCategory.PERFORMANCE):
        if category.value in categories:
            labels.append(category.value)

    return labels


def generate_pr_title(commit_sha: str) -> str:
    return f"Code Police: Automated fixes for {commit_sha[:7]}"


def generate_pr_description(
    commit_sha: str,
    branch: str,
    fixes: list[Fix],
    unfixable_issues: list[UnfixableIssue],
    issues: list[Issue],
) -> str:
    """Markdown body: fixed issues, manual-review issues, testing checklist."""
    issues_by_id = {issue.id: issue for issue in issues}

    parts = [
        "## Code Police - Automated Fix",
        "",
        "This pull request contains automated fixes generated by Code Police.",
        "",
        f"**Analyzed Commit:** `{commit_sha[:7]}`",
        f"**Branch:** `{branch}`",
        "",
        "---",
        "",
        f"### Fixed Issues ({len(fixes)})",
        "",
    ]

    if fixes:
        for fix in fixes:
            line = f"- **{fix.file_path}**: {fix.explanation}"
            issue = issues_by_id.get(fix.issue_id)
            if issue:
                line += f" ({issue.severity.value})"
            parts.append(line)
    else:
        parts.append("_No automatic fixes applied._")

    if unfixable_issues:
        parts += [
            "",
            "---",
            "",
            f"### Issues Requiring Manual Review ({len(unfixable_issues)})",
            "",
        ]
        for unfixable in unfixable_issues:
            issue = issues_by_id.get(unfixable.issue_id)
            if issue:
                parts.append(f"- **{issue.file_path}:{issue.line}** - {issue.message}")
                parts.append(f"  - _Reason:_ {unfixable.reason}")

    parts += [
        "",
        "---",
        "",
        "### Testing Recommendations",
        "",
        "1. Review each fix to ensure it maintains intended functionality",
        "2. Run existing tests to verify no regressions",
        "3. Test affected code paths manually",
        "",
        "---",
        "",
        "_Generated by Code Police_",
        "",
    ]
    return "\n".join(parts)


def file_commit_message(path: str, fixes: list[Fix]) -> str:
    fixes_for_file = [fix for fix in fixes if fix.file_path == path]
    if fixes_for_file:
        return generate_commit_message(fixes_for_file[:1])
    return f"fix: update {path}"


class PRCreator:
    """Source-control orchestrator for one repository."""

    def __init__(self, client: SourceControlService) -> None:
        self.client = client

    async def create_fix_pull_request(
        self,
        owner: str,
        repo: str,
        base_branch: str,
        commit_sha: str,
        fixes: list[Fix],
        issues: list[Issue],
        file_changes: dict[str, str],
        unfixable_issues: list[UnfixableIssue] | None = None,
        now: datetime | None = None,
    ) -> PRCreationResult:
        """
        Create branch, commit every changed file, open the PR, label it.

        Args:
            file_changes: path -> new file content (must be non-empty)

        Returns:
            PRCreationResult; never raises.
        """
        if not file_changes:
            return PRCreationResult(success=False, error=NO_CHANGES_ERROR)

        unfixable = unfixable_issues or []
        try:
            logger.info(f"Getting base ref for {owner}/{repo}@{base_branch}")
            base_sha = await self.client.get_branch_ref(owner, repo, base_branch)

            branch_name = generate_fix_branch_name(commit_sha, now=now)
            logger.info(f"Creating branch {branch_name}")
            await self.client.create_branch(owner, repo, branch_name, base_sha)

            for path, content in file_changes.items():
                logger.info(f"Updating file {path}")
                file_info = await self.client.get_file_info(owner, repo, path, branch_name)
                await self.client.create_or_update_file(
                    owner,
                    repo,
                    path,
                    content,
                    file_commit_message(path, fixes),
                    branch_name,
                    file_info.sha,
                )

            logger.info("Creating pull request")
            pr = await self.client.create_pull_request(
                owner,
                repo,
                generate_pr_title(commit_sha),
                generate_pr_description(commit_sha, base_branch, fixes, unfixable, issues),
                branch_name,
                base_branch,
            )

            labels = generate_pr_labels(issues)
            await best_effort(
                "add PR labels",
                lambda: self.client.add_labels(owner, repo, pr.number, labels),
                log=logger,
            )

            logger.info(f"Created PR #{pr.number}: {pr.url}")
            return PRCreationResult(
                success=True,
                pr_number=pr.number,
                pr_url=pr.url,
                branch_name=branch_name,
            )

        except Exception as e:
            logger.error(f"Failed to create PR for {owner}/{repo}: {e}")
            return PRCreationResult(
                success=False,
                error=str(e) or "Failed to create pull request",
            )
