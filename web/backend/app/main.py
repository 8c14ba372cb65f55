"""FastAPI application for the BarterGuard moderation API.

Provides REST API endpoints wrapping the barterguard package for:
- Content classification
- Listing creation and listing reports
- Message sending with spam and block checks
- User reports, blocks and bans
- The admin review queue, statistics and audit trail
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from barterguard import __version__
from barterguard.config import load_config
from barterguard.logging import configure_logging
from web.backend.app.routers import admin, moderation

configure_logging(overrides=load_config().log_levels)

app = FastAPI(
    title="BarterGuard API",
    description=(
        "REST API for barter marketplace moderation. "
        "Classifies listings and messages, tracks reports and spam, "
        "and exposes admin moderation tools."
    ),
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(moderation.router)
app.include_router(admin.router)


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "BarterGuard API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
