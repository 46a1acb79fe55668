from __future__ import annotations

"""Gate pass issuance routes used by the employee app."""

from fastapi import APIRouter, Depends

from modules.gatepass_errors import GatePassError
from modules.gatepass_service import GatePassService
from modules.permission_store import StoreUnavailableError
from schemas.gatepass import Caller, GatePassStatus, IssueResponse
from utils.deps import get_caller

from . import failure_response, get_service

router = APIRouter()


@router.post("/gate-pass/out/{permission_id}", response_model=IssueResponse)
async def gatepass_out(
    permission_id: str,
    caller: Caller = Depends(get_caller),
    service: GatePassService = Depends(get_service),
):
    """Issue the gate-out token for an approved permission."""
    try:
        secret = service.issue_gate_out(caller, permission_id)
    except (GatePassError, StoreUnavailableError) as exc:
        return failure_response(exc)
    return IssueResponse(secret=secret)


@router.post("/gate-pass/in/{permission_id}", response_model=IssueResponse)
async def gatepass_in(
    permission_id: str,
    caller: Caller = Depends(get_caller),
    service: GatePassService = Depends(get_service),
):
    """Issue the gate-in token once the exit buffer has elapsed.

    A ``too-early`` response carries ``details.wait_minutes``.
    """
    try:
        secret = service.issue_gate_in(caller, permission_id)
    except (GatePassError, StoreUnavailableError) as exc:
        return failure_response(exc)
    return IssueResponse(secret=secret)


@router.get("/gate-pass/{permission_id}", response_model=GatePassStatus)
async def gatepass_status(
    permission_id: str,
    caller: Caller = Depends(get_caller),
    service: GatePassService = Depends(get_service),
):
    try:
        return service.status(caller, permission_id)
    except (GatePassError, StoreUnavailableError) as exc:
        return failure_response(exc)
