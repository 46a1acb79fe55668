"""Application entry point wiring configuration, storage and routers."""

from __future__ import annotations

import json
import os
from contextlib import asynccontextmanager, suppress
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from loguru import logger
from redis import Redis
from redis.exceptions import RedisError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from config import set_config
from core.config import load_config
from routers import gatepass, health
from utils.logging import setup_logging
from utils.redis import get_sync_client

logger = logger.bind(module="app")


# secret key loader
def _load_secret_key() -> str:
    """Fetch session secret key from env or config, falling back to default."""
    env_key = os.getenv("SECRET_KEY")
    if env_key:
        return env_key
    config_path = os.getenv("CONFIG_PATH", "config.json")
    try:
        with open(config_path) as f:
            return json.load(f).get("secret_key", "change-me")
    except (OSError, json.JSONDecodeError):
        return "change-me"


# Global exception handler for unexpected errors
async def handle_unexpected_error(request: Request, exc: Exception):
    """Catch-all handler that logs the error and resets session state."""
    if isinstance(exc, StarletteHTTPException):
        return await http_exception_handler(request, exc)

    logger.exception("Unhandled application error: {}", exc)

    session = request.scope.get("session")
    if isinstance(session, dict):
        session.clear()

    return JSONResponse({"detail": "Internal Server Error"}, status_code=500)


def _connect_redis(url: str) -> Redis:
    """Connect to Redis and return client or exit on failure."""
    try:
        client = get_sync_client(url)
        logger.info("Connected to Redis at {}", url)
        return client
    except (RedisError, OSError) as e:
        logger.exception("Redis connection failed: {}", e)
        raise SystemExit(1)


# Initialize configuration, services, and routers
def init_app(
    app: FastAPI,
    config_path: str | None = None,
    redis_client: Redis | None = None,
) -> dict[str, Any]:
    """Configure application state and services."""
    try:
        cfg = load_config(config_path)
    except (OSError, json.JSONDecodeError, ValueError) as e:
        logger.exception("Configuration load failed: {}", e)
        raise SystemExit(1)
    set_config(cfg)
    if redis_client is None:
        redis_client = _connect_redis(cfg["redis_url"])
    app.state.config = cfg
    app.state.redis_client = redis_client
    gatepass.init_context(cfg, redis_client)
    app.state.ready = True
    return cfg


# Lifespan handler consolidating startup and shutdown logic
@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg = init_app(app, os.getenv("CONFIG_PATH", "config.json"))
    setup_logging(cfg.get("log_file") or None, cfg.get("log_level", "INFO"))
    logger.info(
        "Startup complete. Gate-in buffer {} minute(s)",
        cfg["gatepass_min_buffer_minutes"],
    )
    try:
        yield
    finally:
        app.state.ready = False
        client = getattr(app.state, "redis_client", None)
        if client is not None:
            with suppress(RedisError, OSError):
                client.close()
        logger.info("Shutdown complete")


app = FastAPI(lifespan=lifespan)
app.add_middleware(SessionMiddleware, secret_key=_load_secret_key())
app.state.ready = False
app.add_exception_handler(Exception, handle_unexpected_error)

app.include_router(health.router)
app.include_router(gatepass.router)
