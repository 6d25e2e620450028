"""
Cache Data Models — Analysis results stored by content hash.
"""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field


class CachedIssue(BaseModel):
    """Issue as stored in the analysis cache (no run-specific id)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    file_path: str = Field(..., alias="filePath")
    line: int
    end_line: int | None = Field(default=None, alias="endLine")
    severity: str
    category: str
    message: str
    explanation: str = ""
    suggested_fix: str | None = Field(default=None, alias="suggestedFix")
    rule_id: str | None = Field(default=None, alias="ruleId")
    code_snippet: str | None = Field(default=None, alias="codeSnippet")


class CachedAnalysis(BaseModel):
    """A cached analysis result for one file revision."""

    model_config = ConfigDict(populate_by_name=True)

    cache_key: str = Field(default="", alias="cacheKey")
    issues: list[CachedIssue] = Field(default_factory=list)
    timestamp: float = Field(default_factory=time.time)
    model_version: str = Field(default="", alias="modelVersion")

    def is_expired(self, ttl_seconds: float, now: float | None = None) -> bool:
        return ((now if now is not None else time.time()) - self.timestamp) >= ttl_seconds

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CachedAnalysis":
        return cls.model_validate_json(raw)


class CacheStats(BaseModel):
    memory_entries: int = 0
    redis_available: bool = False
    hits: int = 0
    misses: int = 0
