"""
Fix Data Models — Oracle/fallback fixes and per-file patch results.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Fix(BaseModel):
    """
    A proposed textual edit anchored to a line range.

    start_line..end_line is the inclusive, 1-indexed range in the file as it
    was given to the oracle. Line numbers are authoritative; original_code is
    only used for the string-match fallback.
    """

    model_config = ConfigDict(populate_by_name=True)

    issue_id: str = Field(..., alias="issueId")
    file_path: str = Field(..., alias="filePath")
    start_line: int = Field(..., alias="startLine")
    end_line: int = Field(..., alias="endLine")
    original_code: str = Field(default="", alias="originalCode")
    fixed_code: str = Field(..., alias="fixedCode")
    explanation: str = ""
    confidence: Literal["high", "medium", "low"] = "high"
    can_auto_apply: bool = Field(default=True, alias="canAutoApply")

    @model_validator(mode="after")
    def _check_range(self) -> "Fix":
        if self.end_line < self.start_line:
            raise ValueError(
                f"end_line ({self.end_line}) must be >= start_line ({self.start_line})"
            )
        return self


class UnfixableIssue(BaseModel):
    """An issue explicitly left for manual review."""

    model_config = ConfigDict(populate_by_name=True)

    issue_id: str = Field(..., alias="issueId")
    reason: str


class FixOutput(BaseModel):
    """Result of fix generation for one file."""

    fixes: list[Fix] = Field(default_factory=list)
    unfixable_issues: list[UnfixableIssue] = Field(default_factory=list)
    attempts: int = 0
    used_fallback: bool = False


class FilePatchResult(BaseModel):
    """Outcome of applying an ordered set of fixes to one file."""

    path: str
    new_content: str
    applied_fix_count: int = 0
    applied_fixes: list[Fix] = Field(default_factory=list)
    failed_fixes: list[Fix] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.applied_fix_count > 0


# ── Tagged oracle response ──


class ValidFixes(BaseModel):
    """Oracle response that matched the fix schema."""

    kind: Literal["valid"] = "valid"
    fixes: list[Fix] = Field(default_factory=list)
    dropped: list[str] = Field(
        default_factory=list, description="Reasons individual entries were discarded"
    )


class MalformedResponse(BaseModel):
    """Oracle response that could not be interpreted as a fix list."""

    kind: Literal["malformed"] = "malformed"
    raw: Any = None
    reason: str = ""


OracleResult = Union[ValidFixes, MalformedResponse]
