"""
CardLeads — FastAPI Service

Business-card capture: OCR + LLM extraction, human review, and a deduplicated
lead pipeline with stage/status tracking and spreadsheet export.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cardleads.config import settings
from cardleads.routes import cards, exports, leads, sheets


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize DB tables on startup (idempotent via CREATE TABLE IF NOT EXISTS)."""
    if settings.storage_backend == "database":
        from cardleads.db.session import init_db

        await init_db()
    else:
        logger.info("Using in-memory lead store; leads are lost on restart")
    yield


app = FastAPI(
    title="CardLeads API",
    description="Business-card lead capture with review, deduplication and export.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(cards.router)
app.include_router(leads.router)
app.include_router(exports.router)
app.include_router(sheets.router)


@app.get("/health", tags=["health"])
async def health():
    """Health check for load balancers and container orchestration."""
    return {"status": "ok"}
