"""
Snapshot route registration.
"""

from fastapi import FastAPI

from . import patch, restore, revert, track


def register_routes(app: FastAPI) -> None:
    """Register all snapshot routes."""
    app.include_router(track.router)
    app.include_router(patch.router)
    app.include_router(revert.router)
    app.include_router(restore.router)
