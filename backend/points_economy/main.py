"""FastAPI application entry point.

This module wires together the API routers, configures logging and
startup tasks, maps engine errors onto HTTP responses, and exposes the
ASGI application object used by the server.
"""

import os
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from points_economy.routes import (
    children,
    ledger,
    rewards,
    levels,
    settings,
)
from points_economy.database import create_db_and_tables, async_session
from points_economy.crud import get_settings
from points_economy.exceptions import IntegrityViolation, PointsEconomyError

# Basic logging configuration.  The log level can be controlled with an
# environment variable so deployments can adjust verbosity without code
# changes.
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, LOG_LEVEL))
logger = logging.getLogger(__name__)

app = FastAPI(title="Points Economy API")

# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup():
    """Create the tables and make sure the settings row exists."""

    await create_db_and_tables()
    async with async_session() as session:
        await get_settings(session)


app.include_router(children.router)
app.include_router(ledger.router)
app.include_router(rewards.router)
app.include_router(levels.router)
app.include_router(settings.router)


@app.get("/")
async def read_root():
    async with async_session() as session:
        s = await get_settings(session)
        name = s.site_name
    return {"message": f"Welcome to {name} API"}


@app.exception_handler(PointsEconomyError)
async def points_economy_exception_handler(
    request: Request, exc: PointsEconomyError
):
    """Return engine failures with their own status code and reason."""
    if isinstance(exc, IntegrityViolation):
        # already logged on the integrity logger; keep the request context too
        logger.error("Integrity violation during request %s", request.url.path)
    elif exc.status_code >= 500:
        logger.warning("%s during request %s", exc.code, request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "detail": exc.detail},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler that logs the stack trace once."""
    logger.exception("Unhandled error during request %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "code": "internal_server_error",
            "message": "An unexpected error occurred",
        },
    )
