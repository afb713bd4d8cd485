"""
FastAPI application setup and configuration.
"""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from server.middleware import RequestLoggingMiddleware
from server.state import RuntimeNotConfiguredError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

CORS_ORIGINS_ENV = "CORS_ORIGINS"
ALL_ORIGINS = "*"
API_TITLE = "Agent Session API"
API_VERSION = "1.0.0"


def cors_origins(value: str | None = None) -> list[str]:
    """
    Parse the comma separated CORS_ORIGINS setting.

    Unset means any origin; set it to the UI origins in production.
    """
    raw = value if value is not None else os.environ.get(CORS_ORIGINS_ENV, ALL_ORIGINS)
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or [ALL_ORIGINS]


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(title=API_TITLE, version=API_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Added after CORS so it runs first
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(RuntimeNotConfiguredError)
async def runtime_not_configured_handler(request: Request, exc: RuntimeNotConfiguredError) -> JSONResponse:
    logger.error("%s %s before the runtime was configured", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": str(exc)})
