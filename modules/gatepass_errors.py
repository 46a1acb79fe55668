"""Error taxonomy for gate pass operations.

Every failure a caller can observe is a :class:`GatePassError` carrying a
machine-readable ``code``, the HTTP ``status_code`` it maps to, and optional
structured ``details``. The subclasses group codes by how callers and logs
should treat them:

* :class:`AuthorizationError` - plain denial, never retried.
* :class:`PreconditionError` - caller misuse or stale data.
* :class:`BusinessRuleError` - expected outcome with actionable payload.
* :class:`ConsistencyError` - persistence conflict, fatal to the request only.
"""

from __future__ import annotations

from typing import Any, Mapping


class GatePassError(Exception):
    """Base class for all gate pass failures."""

    code = "gatepass-error"
    status_code = 400
    fault = False

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = dict(details) if details else {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.message!r})"


class AuthorizationError(GatePassError):
    status_code = 403


class NotOwnerError(AuthorizationError):
    code = "not-owner"


class NotVerifierError(AuthorizationError):
    code = "not-verifier"


class PreconditionError(GatePassError):
    status_code = 409


class NotFoundError(PreconditionError):
    code = "not-found"
    status_code = 404


class UnknownTokenError(PreconditionError):
    code = "unknown-token"
    status_code = 404


class InvalidStateError(PreconditionError):
    code = "invalid-state"
    status_code = 409


class BusinessRuleError(GatePassError):
    status_code = 400


class TooEarlyError(BusinessRuleError):
    code = "too-early"
    status_code = 400

    def __init__(self, wait_minutes: int) -> None:
        super().__init__(
            f"Please wait {wait_minutes} more minute(s) before requesting gate-in",
            details={"wait_minutes": wait_minutes},
        )
        self.wait_minutes = wait_minutes


class AlreadyVerifiedError(BusinessRuleError):
    """Token direction already consumed.

    Issuance reports it as a conflict (409), a repeated scan as a bad
    request (400).
    """

    code = "already-verified"
    status_code = 400


class ConsistencyError(GatePassError):
    code = "consistency-error"
    status_code = 500
    fault = True


__all__ = [
    "GatePassError",
    "AuthorizationError",
    "NotOwnerError",
    "NotVerifierError",
    "PreconditionError",
    "NotFoundError",
    "UnknownTokenError",
    "InvalidStateError",
    "BusinessRuleError",
    "TooEarlyError",
    "AlreadyVerifiedError",
    "ConsistencyError",
]
