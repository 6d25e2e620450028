"""
Code Police Configuration — pydantic-settings based.

All settings are read from environment variables or .env file.
Every value has a default so the service boots without secrets; the oracle
gateway refuses to run without GROQ_API_KEY.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Oracle (LLM) ──
    groq_api_key: str = Field(default="", description="Groq API key for the fix oracle")
    codepolice_model: str = Field(
        default="moonshotai/kimi-k2-instruct-0905",
        description="Model identifier for Groq completions",
    )
    llm_timeout: int = Field(default=60, description="Oracle request timeout in seconds")
    llm_max_retries: int = Field(
        default=2, description="Transport-level retries per oracle call"
    )
    llm_backoff_base: float = Field(
        default=1.0, description="Base delay in seconds for exponential backoff"
    )
    llm_max_tokens: int = Field(default=8192, description="Max completion tokens")

    # ── Fix generation ──
    fix_attempts: int = Field(default=3, description="Oracle attempts before fallback")
    fix_temperature_precise: float = Field(
        default=0.1, description="Temperature for the first (precise) attempt"
    )
    fix_temperature_retry: float = Field(
        default=0.2, description="Temperature for retry attempts"
    )

    # ── Source control ──
    github_api_base: str = Field(default="https://api.github.com")
    github_timeout: float = Field(default=30.0, description="GitHub API timeout in seconds")
    fix_branch_prefix: str = Field(default="code-police/fix")

    # ── Auto-fix trigger ──
    autofix_severity_filter: list[str] = Field(
        default=["critical", "high", "medium"],
        description="Issue severities eligible for auto-fix",
    )
    dedup_window_seconds: int = Field(
        default=300,
        description="Repeat triggers for the same (project, commit) inside this window are skipped",
    )

    # ── Analysis cache ──
    redis_url: str | None = Field(
        default=None, description="Shared tier-2 cache. Unset means memory-only"
    )
    cache_ttl_seconds: int = Field(default=86400, description="Cache entry lifetime")
    cache_max_entries: int = Field(default=500, description="Tier-1 capacity")
    cache_evict_count: int = Field(
        default=100, description="Oldest entries dropped when tier 1 is full"
    )
    cache_model_version: str = Field(default="gemini-2.5-flash-lite-v1")
    cache_key_prefix: str = Field(default="code-police:analysis:")
    cache_redis_connect_timeout: float = Field(default=3.0)

    # ── Batching ──
    batch_concurrency: int = Field(default=5, description="Files processed per window")

    # ── Server ──
    port: int = Field(default=5001, description="Server port")
    host: str = Field(default="0.0.0.0", description="Server bind host")
    cors_origins: list[str] = Field(
        default=["*"], description="Allowed CORS origins"
    )

    # ── Audit ──
    audit_log_path: str = Field(
        default="audit.jsonl", description="Path to JSON-lines audit log file"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance, imported by other modules
settings = Settings()
