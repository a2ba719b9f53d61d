"""Upload Session Service.

Accepts batches of uploaded files, holds them in memory under a generated
session ID, and lets a client read file metadata or complete the session
before it expires.

Modules:
    - sessions: session store, expiry sweeper and HTTP endpoints
    - config: YAML-backed settings
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI

from app.config import get_config
from app.sessions.router import router as sessions_router, set_session_store, set_upload_limit
from app.sessions.store import InMemorySessionStore
from app.sessions.sweeper import SessionSweeper

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
for _noisy in (
    "httpx",
    "httpcore",
    "multipart",
    "python_multipart",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    session_cfg = config.sessions
    store = InMemorySessionStore(ttl_seconds=session_cfg.ttl_seconds)
    set_session_store(store)
    set_upload_limit(session_cfg.max_payload_bytes)
    logger.info(
        "Session store ready: ttl=%ss max_payload=%d bytes",
        session_cfg.ttl_seconds,
        session_cfg.max_payload_bytes,
    )

    sweeper = None
    if session_cfg.sweep_enabled:
        sweeper = SessionSweeper(store, interval_seconds=session_cfg.sweep_interval_seconds)
        await sweeper.start()
    else:
        logger.info("Session sweep disabled; expired sessions are evicted on access only.")

    yield  # Application runs here

    # Shutdown
    if sweeper is not None:
        await sweeper.stop()
    set_session_store(None)
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Upload Session API",
    description="Transient in-memory upload sessions with short expiry",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(sessions_router)


@app.get("/api/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object with the current server time.
    """
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return {"status": "ok", "timestamp": now.replace("+00:00", "Z")}
