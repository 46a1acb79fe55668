from __future__ import annotations

"""Security desk routes: scanning gate passes and today's permissions."""

from fastapi import APIRouter, Depends

from modules.gatepass_errors import GatePassError
from modules.gatepass_service import GatePassService
from modules.permission_store import StoreUnavailableError
from schemas.gatepass import Caller, GatePassStatus, VerifyRequest, VerifyResponse
from utils.deps import get_caller

from . import failure_response, get_service

router = APIRouter()


@router.post("/verify", response_model=VerifyResponse)
async def gatepass_verify(
    payload: VerifyRequest,
    caller: Caller = Depends(get_caller),
    service: GatePassService = Depends(get_service),
):
    """Consume a scanned gate pass token."""
    try:
        return service.verify(caller, payload.secret)
    except (GatePassError, StoreUnavailableError) as exc:
        return failure_response(exc)


@router.get("/permissions/today", response_model=list[GatePassStatus])
async def permissions_today(
    caller: Caller = Depends(get_caller),
    service: GatePassService = Depends(get_service),
):
    """List approved permissions starting today for the security desk."""
    try:
        return service.list_today(caller)
    except (GatePassError, StoreUnavailableError) as exc:
        return failure_response(exc)
