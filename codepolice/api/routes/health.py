"""
Health Check Route — GET /health
"""

from __future__ import annotations

from fastapi import APIRouter

from codepolice.config import settings

router = APIRouter()


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "model": settings.codepolice_model,
        "version": "1.0.0",
    }
