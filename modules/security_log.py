"""Security desk log of gate pass scans.

Each verification attempt that passes the verifier check is appended to the
``security:logs`` sorted set (scored by timestamp) and mirrored to the audit
log. Writing the log never fails a scan that has already been committed.
"""

from __future__ import annotations

import json
import uuid
from typing import Optional

import redis
from loguru import logger

from core import events
from schemas.gatepass import Direction
from utils.audit import log_audit
from utils.redis import SECURITY_LOG_KEY, trim_sorted_set_sync
from utils.time import format_ts

_ACTIONS = {
    Direction.GATE_OUT: events.GATE_OUT,
    Direction.GATE_IN: events.GATE_IN,
}


class SecurityLog:
    """Append-only record of gate scans kept in Redis."""

    def __init__(self, redis_client: Optional[redis.Redis]) -> None:
        self._redis = redis_client

    # record_scan routine
    def record_scan(
        self,
        direction: Direction,
        permission_id: str,
        employee_id: str,
        verified_by: str,
        ts: float,
    ) -> dict:
        """Record a successful scan."""
        return self._append(
            {
                "permission_id": permission_id,
                "employee_id": employee_id,
                "action": _ACTIONS[direction],
                "verified_by": verified_by,
                "status": events.SUCCESS,
                "details": "",
                "ts": ts,
            }
        )

    # record_failure routine
    def record_failure(
        self,
        verified_by: str,
        reason: str,
        ts: float,
        permission_id: str | None = None,
        employee_id: str | None = None,
    ) -> dict:
        """Record a rejected scan with the error code in ``details``."""
        return self._append(
            {
                "permission_id": permission_id,
                "employee_id": employee_id,
                "action": events.VERIFICATION_FAILED,
                "verified_by": verified_by,
                "status": events.FAILURE,
                "details": reason,
                "ts": ts,
            }
        )

    def recent(self, limit: int = 50) -> list[dict]:
        """Return up to ``limit`` newest entries, newest first."""
        if self._redis is None:
            return []
        try:
            entries = self._redis.zrevrange(SECURITY_LOG_KEY, 0, max(limit, 1) - 1)
        except Exception:
            logger.exception("Redis unavailable while reading security log")
            return []
        return [json.loads(e) for e in entries]

    def _append(self, entry: dict) -> dict:
        entry["id"] = uuid.uuid4().hex
        entry["time"] = format_ts(entry["ts"])
        ok = entry["status"] == events.SUCCESS
        log_audit(
            entry["action"],
            entry["verified_by"],
            None if ok else entry["details"],
            ok=ok,
            permission_id=entry["permission_id"],
            employee_id=entry["employee_id"],
        )
        if self._redis is None:
            return entry
        try:
            self._redis.zadd(SECURITY_LOG_KEY, {json.dumps(entry): entry["ts"]})
            trim_sorted_set_sync(self._redis, SECURITY_LOG_KEY, entry["ts"])
        except Exception:
            logger.exception(
                "Failed to write security log for permission {}",
                entry["permission_id"],
            )
        return entry
