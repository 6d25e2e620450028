"""
Auto-Fix Data Models — Trigger contract, pipeline results, PR outcomes.

Wire names are camelCase (webhook/API layer); Python attributes are snake_case.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from codepolice.models.issue_models import Issue


class AutoFixInput(BaseModel):
    """Inbound trigger for one auto-fix run."""

    model_config = ConfigDict(populate_by_name=True)

    source_control_token: str = Field(..., alias="sourceControlToken")
    owner: str
    repo: str
    branch: str
    commit_sha: str = Field(..., alias="commitSha")
    issues: list[Issue] = Field(default_factory=list)
    analysis_run_id: str = Field(..., alias="analysisRunId")
    severity_filter: list[str] | None = Field(default=None, alias="severityFilter")


class AutoFixDiagnosis(str, Enum):
    """Why a run ended with zero file changes."""

    ALL_FETCH_FAILED = "all_fetch_failed"
    PARTIAL_FAILURE = "partial_failure"
    FIXES_UNCHANGED = "fixes_unchanged"
    NO_FIXES = "no_fixes"


DIAGNOSIS_MESSAGES: dict[AutoFixDiagnosis, str] = {
    AutoFixDiagnosis.ALL_FETCH_FAILED: (
        "All files failed to fetch from the repository; check repository access and retry"
    ),
    AutoFixDiagnosis.PARTIAL_FAILURE: (
        "Some files failed to process and the remaining files produced no changes"
    ),
    AutoFixDiagnosis.FIXES_UNCHANGED: (
        "Fixes generated but could not be applied to source files"
    ),
    AutoFixDiagnosis.NO_FIXES: "No fixes could be generated for the issues",
}


class AutoFixResult(BaseModel):
    """Outcome of one auto-fix run."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    pr_number: int | None = Field(default=None, alias="prNumber")
    pr_url: str | None = Field(default=None, alias="prUrl")
    branch_name: str | None = Field(default=None, alias="branchName")
    fixes_generated: int = Field(default=0, alias="fixesGenerated")
    files_changed: int = Field(default=0, alias="filesChanged")
    error: str | None = None
    errors: list[str] = Field(default_factory=list)
    diagnosis: AutoFixDiagnosis | None = None


class PRCreationResult(BaseModel):
    """Terminal outcome of the source-control orchestrator."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    pr_number: int | None = Field(default=None, alias="prNumber")
    pr_url: str | None = Field(default=None, alias="prUrl")
    branch_name: str | None = Field(default=None, alias="branchName")
    error: str | None = None

    @model_validator(mode="after")
    def _failure_has_error(self) -> "PRCreationResult":
        if not self.success and not self.error:
            self.error = "Failed to create pull request"
        return self


class PullRequestRef(BaseModel):
    number: int
    url: str


class FileInfo(BaseModel):
    """Blob SHA and decoded content of a file on a branch."""

    sha: str
    content: str


class AutoFixRecord(BaseModel):
    """Fixed result shape written onto the externally-owned analysis run."""

    model_config = ConfigDict(populate_by_name=True)

    auto_fix_attempted: bool = Field(default=True, alias="autoFixAttempted")
    auto_fix_pr_url: str | None = Field(default=None, alias="autoFixPrUrl")
    auto_fix_pr_number: int | None = Field(default=None, alias="autoFixPrNumber")
    auto_fix_branch: str | None = Field(default=None, alias="autoFixBranch")
    auto_fixes_generated: int = Field(default=0, alias="autoFixesGenerated")
    auto_fix_files_changed: int = Field(default=0, alias="autoFixFilesChanged")
    auto_fix_error: str | None = Field(default=None, alias="autoFixError")

    @classmethod
    def from_result(cls, result: AutoFixResult) -> "AutoFixRecord":
        return cls(
            auto_fix_pr_url=result.pr_url,
            auto_fix_pr_number=result.pr_number,
            auto_fix_branch=result.branch_name,
            auto_fixes_generated=result.fixes_generated,
            auto_fix_files_changed=result.files_changed,
            auto_fix_error=None if result.success else result.error,
        )


class AutoFixRequest(BaseModel):
    """Request body for POST /autofix."""

    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(..., alias="projectId")
    input: AutoFixInput


class AutoFixResponse(BaseModel):
    """Response from POST /autofix."""

    message: str = "autofix_complete"
    result: AutoFixResult | None = None
