from __future__ import annotations

"""Pydantic models for permissions, gate passes and their routes."""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Direction(str, Enum):
    """Which way through the gate a token is valid for."""

    GATE_OUT = "gate-out"
    GATE_IN = "gate-in"


class PassState(str, Enum):
    """Per-direction state derived from the nullable gate pass fields."""

    ABSENT_TOKEN = "absent-token"
    ISSUED_UNVERIFIED = "issued-unverified"
    VERIFIED = "verified"


PermissionStatus = Literal["pending", "approved", "rejected", "cancelled"]


class GatePass(BaseModel):
    """Token slot for one direction of a permission.

    Only the digest of the issued token is kept; the token itself is handed to
    the employee once and never stored.
    """

    secret_hash: Optional[str] = None
    issued_at: Optional[float] = None
    verified_at: Optional[float] = None
    verified_by: Optional[str] = None

    @property
    def state(self) -> PassState:
        if self.verified_at is not None:
            return PassState.VERIFIED
        if self.secret_hash:
            return PassState.ISSUED_UNVERIFIED
        return PassState.ABSENT_TOKEN


class PermissionWindow(BaseModel):
    """Approved absence window; informational only."""

    start: float
    end: float
    hours: float = 0.0


class Permission(BaseModel):
    """Short leave permission with its gate pass sub-state."""

    id: str
    employee_id: str
    requested_by: str
    window: PermissionWindow
    status: PermissionStatus = "pending"
    gate_out: GatePass = Field(default_factory=GatePass)
    gate_in: GatePass = Field(default_factory=GatePass)

    def gate(self, direction: Direction) -> GatePass:
        return self.gate_out if direction is Direction.GATE_OUT else self.gate_in

    @field_validator("id", "employee_id", "requested_by")
    @classmethod
    def _not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()


class Caller(BaseModel):
    """Identity resolved by the identity service for the current request."""

    id: str
    employee_id: Optional[str] = None
    role: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("role")
    @classmethod
    def _normalize_role(cls, value: str) -> str:
        return (value or "").strip().lower()

    @field_validator("employee_id")
    @classmethod
    def _normalize_employee_id(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class IssueResponse(BaseModel):
    """Response model for gate-out and gate-in issuance."""

    secret: str


class VerifyRequest(BaseModel):
    """Scanned token submitted by the security desk."""

    secret: str

    @field_validator("secret")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()


class VerifyResponse(BaseModel):
    """Response model for a consumed token."""

    direction: Direction
    verified_at: float
    permission_id: str
    employee_id: str


class DirectionStatus(BaseModel):
    state: PassState
    issued_at: Optional[float] = None
    verified_at: Optional[float] = None


class GatePassStatus(BaseModel):
    """Gate pass overview for one permission; never carries secrets."""

    permission_id: str
    employee_id: str
    status: PermissionStatus
    window: PermissionWindow
    gate_out: DirectionStatus
    gate_in: DirectionStatus
    wait_minutes: Optional[int] = None
