"""Authorization policy for gate pass operations.

Ownership and scanner access are separate questions: only the employee a
permission belongs to may request its tokens, and only callers holding the
verifier capability may consume them. The policy is a pure function with no
side effects; unknown roles and unknown operations are denied.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from config import config as cfg
from schemas.gatepass import Caller, Permission


class Operation(str, Enum):
    ISSUE_GATE_OUT = "issue-gate-out"
    ISSUE_GATE_IN = "issue-gate-in"
    VERIFY = "verify"
    VIEW_STATUS = "view-status"
    LIST_TODAY = "list-today"


NOT_OWNER = "not-owner"
NOT_VERIFIER = "not-verifier"
UNKNOWN_OPERATION = "unknown-operation"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def _roles(value: Iterable[str] | None) -> frozenset[str]:
    return frozenset(str(r).strip().lower() for r in value or ())


def is_verifier(caller: Caller, verifier_roles: Iterable[str] | None = None) -> bool:
    """Return True if ``caller`` may operate the gate scanner."""
    roles = _roles(verifier_roles if verifier_roles is not None else cfg.get("verifier_roles"))
    return bool(caller.role) and caller.role in roles


def is_owner(
    caller: Caller, permission: Permission, known_roles: Iterable[str] | None = None
) -> bool:
    """Return True if ``caller`` is the employee ``permission`` belongs to."""
    roles = _roles(known_roles if known_roles is not None else cfg.get("known_roles"))
    if caller.role not in roles:
        return False
    if not caller.employee_id:
        return False
    return caller.employee_id == permission.employee_id


# authorize routine
def authorize(
    caller: Caller,
    permission: Permission | None,
    operation: Operation | str,
    *,
    verifier_roles: Iterable[str] | None = None,
    known_roles: Iterable[str] | None = None,
) -> Decision:
    """Return whether ``caller`` may perform ``operation`` on ``permission``.

    ``permission`` may be ``None`` for operations that are not bound to a
    single record (``verify`` before the token is resolved, ``list-today``).
    """
    try:
        op = Operation(operation)
    except ValueError:
        return Decision(False, UNKNOWN_OPERATION)

    if op in (Operation.VERIFY, Operation.LIST_TODAY):
        if is_verifier(caller, verifier_roles):
            return ALLOW
        return Decision(False, NOT_VERIFIER)

    if permission is None:
        return Decision(False, NOT_OWNER)
    owner = is_owner(caller, permission, known_roles)
    if op is Operation.VIEW_STATUS:
        if owner or is_verifier(caller, verifier_roles):
            return ALLOW
        return Decision(False, NOT_OWNER)
    # issuance is strictly owner-only, security and HR included
    return ALLOW if owner else Decision(False, NOT_OWNER)
