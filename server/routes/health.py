"""
Health check endpoint.
"""

from fastapi import APIRouter

from ..state import get_runtime


router = APIRouter()


@router.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    runtime = get_runtime()
    return {"status": "ok", "busy": runtime.lock.busy()}
