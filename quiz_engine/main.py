"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from quiz_engine import __version__
from quiz_engine.config import settings
from quiz_engine.api import (
    health_router,
    attempts_router,
    progress_router,
)
from quiz_engine.services.quiz_gateway import close_http_client

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-25s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Quiz engine starting → quiz-responses service at %s", settings.QUIZ_API_URL)
    yield
    await close_http_client()
    logger.info("Quiz engine shut down")


app = FastAPI(
    title="Quiz Engine API",
    description="Quiz attempts and performance analytics",
    version=__version__,
    lifespan=lifespan,
)

# ── Middleware ─────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(health_router, tags=["Health"])
app.include_router(attempts_router, prefix="/api/attempts", tags=["Attempts"])
app.include_router(progress_router, prefix="/api/progress", tags=["Progress"])


@app.get("/")
async def root():
    return {
        "name": "Quiz Engine API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
