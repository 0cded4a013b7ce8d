import datetime
import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import CORS_ORIGINS, DRAW_POLICY, LOG_LEVEL
from .db import engine, init_models
from .routes import router
from .stats import DRAW_POLICIES

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app):
    """Creates the tables on startup and releases pooled connections on shutdown."""
    if DRAW_POLICY not in DRAW_POLICIES:
        raise ValueError(f"DRAW_POLICY must be one of {DRAW_POLICIES}, got {DRAW_POLICY!r}")
    await init_models()
    logger.info("Tic Tac Toe backend started (draw policy: %s)", DRAW_POLICY)
    yield
    await engine.dispose()
    logger.info("Stop Server")


app = FastAPI(
    title="Tic Tac Toe Backend",
    description="API backend for a simple online Tic Tac Toe game.",
    version="0.2.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Game", "description": "Game creation, moves, and listing endpoints."},
        {"name": "Stats", "description": "Win/loss/draw counters per player."},
    ]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Main API router for all core endpoints
app.include_router(router)

@app.get("/health", tags=["General"])
def health_check():
    """Health Check endpoint for backend"""
    return {
        "status": "healthy",
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "uptime": time.monotonic() - STARTED_AT,
    }
