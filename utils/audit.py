"""Audit trail logging for gate pass operations."""

from __future__ import annotations

from typing import Any

from loguru import logger


def log_audit(
    action: str,
    user: str,
    reason: str | None = None,
    *,
    ok: bool = True,
    **details: Any,
) -> None:
    """Write an audit entry with ``action``, ``user``, and optional ``reason``.

    Successful actions are logged at INFO, refusals at WARNING. Additional
    keyword arguments may be supplied in ``details``.
    """
    payload: dict[str, Any] = {"action": action, "user": user, "ok": ok}
    if reason:
        payload["reason"] = reason
    if details:
        payload.update(details)
    bound = logger.bind(audit=True, **payload)
    if ok:
        bound.info("audit {} by {}", action, user)
    else:
        bound.warning("audit {} by {} refused: {}", action, user, reason or "-")
