"""
Auto-Fix Route — POST /autofix

Manual/webhook trigger: runs fix generation and PR creation for one
analysed commit. Repeat triggers for the same (project, commit) inside the
dedup window are answered with message "duplicate" and do nothing.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from codepolice.api.dependencies import get_analysis_cache, get_autofix_service
from codepolice.cache.analysis_cache import AnalysisCache
from codepolice.engine.autofix_service import AutoFixService
from codepolice.models.autofix_models import AutoFixRequest, AutoFixResponse

logger = logging.getLogger("codepolice.api.autofix")

router = APIRouter()


@router.post("/autofix", response_model=AutoFixResponse, response_model_by_alias=True)
async def trigger_autofix(
    request: AutoFixRequest,
    service: AutoFixService = Depends(get_autofix_service),
):
    """
    Request body:
        - projectId: owning project
        - input: AutoFixInput (token, owner, repo, branch, commitSha, issues, ...)

    Response:
        - message: "autofix_complete" or "duplicate"
        - result: AutoFixResult, null for duplicates
    """
    result = await service.trigger(request.project_id, request.input)
    if result is None:
        return AutoFixResponse(message="duplicate", result=None)
    return AutoFixResponse(result=result)


@router.get("/cache/stats")
async def cache_stats(cache: AnalysisCache = Depends(get_analysis_cache)):
    """Analysis cache statistics."""
    return cache.stats().model_dump()
