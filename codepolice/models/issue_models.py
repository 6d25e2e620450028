"""
Issue Data Models — Detected code issues handed to the auto-fix pipeline.

Issues are produced upstream (analysis run) and are immutable here.
Line numbers are 1-indexed against the analysed commit.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class IssueCategory(str, Enum):
    SECURITY = "security"
    PERFORMANCE = "performance"
    BUG = "bug"
    READABILITY = "readability"
    STYLE = "style"
    BEST_PRACTICE = "best-practice"


class Issue(BaseModel):
    """A single code issue reported by the analysis step."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Issue identifier, unique within a run")
    file_path: str = Field(..., alias="filePath")
    line: int = Field(default=1, description="1-indexed start line")
    end_line: int | None = Field(default=None, alias="endLine")
    severity: Severity
    # Free-form upstream; known values are listed in IssueCategory
    category: str = "bug"
    message: str = ""
    explanation: str = ""
    suggested_fix: str | None = Field(default=None, alias="suggestedFix")
    code_snippet: str | None = Field(default=None, alias="codeSnippet")
    rule_id: str | None = Field(default=None, alias="ruleId")

    def oracle_payload(self) -> dict:
        """Subset of fields serialised into the fix prompt."""
        return {
            "id": self.id,
            "line": self.line,
            "endLine": self.end_line or self.line,
            "severity": self.severity.value,
            "category": self.category,
            "message": self.message,
            "explanation": self.explanation,
            "suggestedFix": self.suggested_fix,
            "codeSnippet": self.code_snippet,
        }
