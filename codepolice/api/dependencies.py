"""
FastAPI Dependencies — Shared singletons injected via Depends().
"""

from __future__ import annotations

from functools import lru_cache

from codepolice.audit.logger import AuditLogger
from codepolice.cache.analysis_cache import AnalysisCache
from codepolice.engine.autofix_service import AutoFixService
from codepolice.engine.dedup import TriggerDeduplicator
from codepolice.engine.fix_generator import FixGenerator
from codepolice.engine.pipeline import AutoFixPipeline
from codepolice.llm.gateway import LLMGateway


@lru_cache
def get_analysis_cache() -> AnalysisCache:
    """Shared analysis cache singleton."""
    return AnalysisCache.from_settings()


@lru_cache
def get_audit_logger() -> AuditLogger:
    """Shared audit logger singleton."""
    return AuditLogger()


@lru_cache
def get_llm_gateway() -> LLMGateway:
    """Shared oracle gateway singleton."""
    return LLMGateway()


@lru_cache
def get_deduplicator() -> TriggerDeduplicator:
    """Shared trigger deduplicator singleton."""
    return TriggerDeduplicator()


@lru_cache
def get_autofix_service() -> AutoFixService:
    """Shared auto-fix service singleton."""
    pipeline = AutoFixPipeline(fix_generator=FixGenerator(oracle=get_llm_gateway()))
    return AutoFixService(
        pipeline=pipeline,
        deduplicator=get_deduplicator(),
        recorder=get_audit_logger(),
    )
