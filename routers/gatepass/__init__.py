from __future__ import annotations

"""Gatepass router package with shared context and combined routes."""

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from loguru import logger

from config import config as cfg
from modules.gatepass_errors import GatePassError
from modules.gatepass_service import GatePassService
from modules.permission_store import RedisPermissionStore, StoreUnavailableError
from modules.security_log import SecurityLog
from utils.api_errors import error_response, gatepass_error_response
from utils.time import Clock

router = APIRouter(prefix="/security", tags=["security"])

# placeholders for context-initialized objects
config_obj: dict = {}
redis = None
service: GatePassService | None = None


def get_service() -> GatePassService:
    """Return the gate pass service configured by :func:`init_context`."""
    if service is None:
        raise HTTPException(status_code=503, detail="gatepass_not_initialized")
    return service


def failure_response(exc: Exception) -> JSONResponse:
    """Map a service failure to the standard error payload."""
    if isinstance(exc, GatePassError):
        if exc.fault:
            logger.opt(exception=exc).error("gatepass fault: {}", exc.message)
        return gatepass_error_response(exc)
    if isinstance(exc, StoreUnavailableError):
        return error_response(
            "redis_unavailable", "Gate pass storage unavailable", status_code=503
        )
    raise exc


def init_context(cfg_obj: dict, redis_client, clock: Clock | None = None) -> GatePassService:
    """Initialize shared context for gatepass submodules.

    ``config_obj`` is mutated in place so modules that imported it keep
    seeing current values. Submodules resolve the service through
    :func:`get_service` at request time.
    """

    global redis, service

    config_obj.clear()
    config_obj.update(cfg_obj)

    redis = redis_client
    service = GatePassService(
        RedisPermissionStore(
            redis_client, max_retries=config_obj.get("gatepass_max_update_retries")
        ),
        clock,
        security_log=SecurityLog(redis_client),
        min_buffer_minutes=config_obj.get(
            "gatepass_min_buffer_minutes", cfg.get("gatepass_min_buffer_minutes")
        ),
        token_bytes=config_obj.get("gatepass_token_bytes"),
        verifier_roles=config_obj.get("verifier_roles"),
        known_roles=config_obj.get("known_roles"),
    )
    logger.info(
        "gatepass initialized (buffer {} min, verifiers {})",
        service.min_buffer / 60,
        ", ".join(config_obj.get("verifier_roles") or cfg.get("verifier_roles", [])),
    )
    return service


from . import issue, verify  # noqa: E402
from .issue import gatepass_in, gatepass_out, gatepass_status  # noqa: E402,F401
from .verify import gatepass_verify, permissions_today  # noqa: E402,F401

router.include_router(issue.router)
router.include_router(verify.router)

# expose commonly used helpers
__all__ = [
    "router",
    "init_context",
    "get_service",
    "failure_response",
    "gatepass_out",
    "gatepass_in",
    "gatepass_status",
    "gatepass_verify",
    "permissions_today",
]
