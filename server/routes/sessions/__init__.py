"""
Session route registration.
"""

from fastapi import FastAPI

from . import abort, children, create, get, init, list, share, summarize, update


def register_routes(app: FastAPI) -> None:
    """Register all session routes."""
    app.include_router(list.router)
    app.include_router(create.router)
    app.include_router(get.router)
    app.include_router(update.router)
    app.include_router(children.router)
    app.include_router(share.router)
    app.include_router(abort.router)
    app.include_router(summarize.router)
    app.include_router(init.router)
