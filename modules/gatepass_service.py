"""Gate pass issuance and verification.

A permission carries two token slots, ``gate_out`` and ``gate_in``. Each slot
is in one of three states derived from its nullable fields: no token, issued
but not scanned, or verified. The owner requests tokens, the security desk
consumes them, and re-entry tokens are only handed out once the configured
buffer has passed since the verified exit.

All checks that depend on stored state run inside
:meth:`RedisPermissionStore.update`, so a failed check writes nothing and two
scans of one token can never both succeed.
"""

from __future__ import annotations

from typing import Iterable, Optional

from loguru import logger

from config import GATEPASS_SETTINGS
from modules.gatepass_errors import (
    AlreadyVerifiedError,
    GatePassError,
    InvalidStateError,
    NotFoundError,
    NotOwnerError,
    NotVerifierError,
    TooEarlyError,
    UnknownTokenError,
)
from modules.gatepass_policy import NOT_VERIFIER, Operation, authorize
from modules.gatepass_tokens import digest, is_well_formed, mint
from modules.permission_store import PermissionStore
from modules.security_log import SecurityLog
from schemas.gatepass import (
    Caller,
    Direction,
    DirectionStatus,
    GatePass,
    GatePassStatus,
    Permission,
    VerifyResponse,
)
from utils.time import Clock, SystemClock, ceil_minutes, day_bounds

logger = logger.bind(module="gatepass")


class GatePassService:
    """State machine for gate-out and gate-in tokens."""

    def __init__(
        self,
        store: PermissionStore,
        clock: Clock | None = None,
        *,
        security_log: SecurityLog | None = None,
        min_buffer_minutes: float | None = None,
        token_bytes: int | None = None,
        verifier_roles: Iterable[str] | None = None,
        known_roles: Iterable[str] | None = None,
    ) -> None:
        self.store = store
        self.clock = clock or SystemClock()
        self.security_log = security_log or SecurityLog(None)
        if min_buffer_minutes is None:
            min_buffer_minutes = GATEPASS_SETTINGS.min_buffer_minutes
        self.min_buffer = float(min_buffer_minutes) * 60
        self.token_bytes = token_bytes
        self.verifier_roles = verifier_roles
        self.known_roles = known_roles

    # Authorization -------------------------------------------------------

    def _authorize(
        self, caller: Caller, permission: Optional[Permission], operation: Operation
    ) -> None:
        decision = authorize(
            caller,
            permission,
            operation,
            verifier_roles=self.verifier_roles,
            known_roles=self.known_roles,
        )
        if decision:
            return
        logger.info(
            "{} denied for {} (role {!r}): {}",
            operation.value,
            caller.id,
            caller.role,
            decision.reason,
        )
        if decision.reason == NOT_VERIFIER:
            raise NotVerifierError("Only security personnel may verify gate passes")
        raise NotOwnerError(
            "Only the employee this permission belongs to may request a gate pass"
        )

    def _load(self, permission_id: str) -> Permission:
        permission = self.store.get_permission(permission_id)
        if permission is None:
            raise NotFoundError(f"Permission {permission_id} not found")
        return permission

    def _new_pass(self, permission_id: str, direction: Direction) -> tuple[str, GatePass]:
        token = mint(permission_id, direction, self.token_bytes)
        return token, GatePass(secret_hash=digest(token), issued_at=self.clock.now())

    def remaining_buffer(self, permission: Permission, now: float | None = None) -> float:
        """Return seconds left before gate-in may be requested (0 when ready)."""
        verified_out = permission.gate_out.verified_at
        if verified_out is None:
            raise InvalidStateError("Must gate out before requesting gate-in")
        now = self.clock.now() if now is None else now
        return max(self.min_buffer - (now - verified_out), 0.0)

    # Issuance ------------------------------------------------------------

    # issue_gate_out routine
    def issue_gate_out(self, caller: Caller, permission_id: str) -> str:
        """Mint a gate-out token for ``permission_id`` and return it.

        Calling again before the token is scanned replaces it; the earlier
        token stops resolving.
        """
        self._authorize(caller, self._load(permission_id), Operation.ISSUE_GATE_OUT)
        issued: dict[str, str] = {}

        def _issue(permission: Permission) -> Permission:
            self._authorize(caller, permission, Operation.ISSUE_GATE_OUT)
            if permission.status != "approved":
                raise InvalidStateError("Permission is not approved")
            if permission.gate_out.verified_at is not None:
                raise AlreadyVerifiedError(
                    "Gate out already verified for this permission", status_code=409
                )
            issued["token"], permission.gate_out = self._new_pass(
                permission.id, Direction.GATE_OUT
            )
            return permission

        self.store.update(permission_id, _issue)
        logger.info("gate-out pass issued for permission {} by {}", permission_id, caller.id)
        return issued["token"]

    # issue_gate_in routine
    def issue_gate_in(self, caller: Caller, permission_id: str) -> str:
        """Mint a gate-in token once the exit was verified and the buffer passed.

        Raises :class:`TooEarlyError` carrying ``wait_minutes`` while the
        buffer is still running.
        """
        self._authorize(caller, self._load(permission_id), Operation.ISSUE_GATE_IN)
        issued: dict[str, str] = {}

        def _issue(permission: Permission) -> Permission:
            self._authorize(caller, permission, Operation.ISSUE_GATE_IN)
            if permission.gate_out.verified_at is None:
                raise InvalidStateError("Must gate out before requesting gate-in")
            if permission.status != "approved":
                raise InvalidStateError("Permission is no longer approved")
            if permission.gate_in.verified_at is not None:
                raise AlreadyVerifiedError(
                    "Gate in already verified for this permission", status_code=409
                )
            remaining = self.remaining_buffer(permission)
            if remaining > 0:
                raise TooEarlyError(ceil_minutes(remaining))
            issued["token"], permission.gate_in = self._new_pass(
                permission.id, Direction.GATE_IN
            )
            return permission

        try:
            self.store.update(permission_id, _issue)
        except TooEarlyError as exc:
            logger.info(
                "gate-in for permission {} requested {} minute(s) early",
                permission_id,
                exc.wait_minutes,
            )
            raise
        logger.info("gate-in pass issued for permission {} by {}", permission_id, caller.id)
        return issued["token"]

    # Verification --------------------------------------------------------

    # verify routine
    def verify(self, caller: Caller, token: str) -> VerifyResponse:
        """Consume ``token`` on behalf of the security desk."""
        self._authorize(caller, None, Operation.VERIFY)
        resolved = self.store.resolve_secret(token) if is_well_formed(token) else None
        if resolved is None:
            self.security_log.record_failure(
                caller.id, UnknownTokenError.code, self.clock.now()
            )
            raise UnknownTokenError("Invalid or expired gate pass")
        permission_id, direction = resolved
        hashed = digest(token)

        def _consume(permission: Permission) -> Permission:
            slot = permission.gate(direction)
            if slot.secret_hash != hashed:
                raise UnknownTokenError("Invalid or expired gate pass")
            if slot.verified_at is not None:
                raise AlreadyVerifiedError(
                    f"Gate pass already verified ({direction.value})"
                )
            if direction is Direction.GATE_IN:
                if permission.gate_out.verified_at is None:
                    raise InvalidStateError("Gate out was never verified")
            elif permission.status != "approved":
                raise InvalidStateError("Permission is no longer approved")
            slot.verified_at = self.clock.now()
            slot.verified_by = caller.id
            return permission

        try:
            permission = self.store.update(permission_id, _consume)
        except NotFoundError:
            self.security_log.record_failure(
                caller.id, UnknownTokenError.code, self.clock.now(), permission_id
            )
            raise UnknownTokenError("Invalid or expired gate pass") from None
        except GatePassError as exc:
            self.security_log.record_failure(
                caller.id, exc.code, self.clock.now(), permission_id
            )
            logger.info(
                "{} scan rejected for permission {}: {}",
                direction.value,
                permission_id,
                exc.code,
            )
            raise

        verified_at = permission.gate(direction).verified_at
        self.security_log.record_scan(
            direction, permission.id, permission.employee_id, caller.id, verified_at
        )
        logger.info(
            "{} verified for permission {} by {}", direction.value, permission.id, caller.id
        )
        return VerifyResponse(
            direction=direction,
            verified_at=verified_at,
            permission_id=permission.id,
            employee_id=permission.employee_id,
        )

    # Read-only views -----------------------------------------------------

    def describe(self, permission: Permission) -> GatePassStatus:
        """Return the secret-free gate pass overview of ``permission``."""
        wait_minutes = None
        if (
            permission.status == "approved"
            and permission.gate_out.verified_at is not None
            and permission.gate_in.verified_at is None
        ):
            wait_minutes = ceil_minutes(self.remaining_buffer(permission))
        return GatePassStatus(
            permission_id=permission.id,
            employee_id=permission.employee_id,
            status=permission.status,
            window=permission.window,
            gate_out=_direction_status(permission.gate_out),
            gate_in=_direction_status(permission.gate_in),
            wait_minutes=wait_minutes,
        )

    def status(self, caller: Caller, permission_id: str) -> GatePassStatus:
        """Return the gate pass overview for the owner or the security desk."""
        permission = self._load(permission_id)
        self._authorize(caller, permission, Operation.VIEW_STATUS)
        return self.describe(permission)

    def list_today(self, caller: Caller) -> list[GatePassStatus]:
        """Return approved permissions whose window starts today."""
        self._authorize(caller, None, Operation.LIST_TODAY)
        start, end = day_bounds(self.clock.now())
        permissions = self.store.list_starting_between(start, end)
        return [self.describe(p) for p in permissions if p.status == "approved"]


def _direction_status(gate: GatePass) -> DirectionStatus:
    return DirectionStatus(
        state=gate.state, issued_at=gate.issued_at, verified_at=gate.verified_at
    )
