"""
HTTP API server for the session core.

Thin FastAPI bindings over ``core`` and ``snapshot``; all state lives in the
``Runtime`` registered with ``set_runtime``.
"""

from .app import app
from .routes import register_routes
from .state import Runtime, RuntimeNotConfiguredError, get_runtime, set_runtime

# Register all routes with the app
register_routes(app)

__all__ = ["app", "Runtime", "RuntimeNotConfiguredError", "get_runtime", "set_runtime"]
