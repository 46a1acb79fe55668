"""Tests for the security desk scan log."""

from conftest import START_TS
from core import events
from modules.security_log import SecurityLog
from schemas.gatepass import Direction
from utils.redis import SECURITY_LOG_KEY


def test_scans_recorded_newest_first(service, approved, employee, guard, security_log, clock):
    service.verify(guard, service.issue_gate_out(employee, "perm-1"))
    clock.advance(minutes=1)
    try:
        service.verify(guard, "A" * 43)
    except Exception:
        pass

    entries = security_log.recent()
    assert [e["action"] for e in entries] == [events.VERIFICATION_FAILED, events.GATE_OUT]
    failed, ok = entries
    assert ok["status"] == events.SUCCESS
    assert ok["permission_id"] == "perm-1"
    assert ok["employee_id"] == "emp-1"
    assert ok["verified_by"] == "guard-1"
    assert ok["ts"] == START_TS
    assert failed["status"] == events.FAILURE
    assert failed["details"] == "unknown-token"
    assert failed["permission_id"] is None


def test_not_verifier_attempts_not_logged(service, approved, employee, security_log):
    secret = service.issue_gate_out(employee, "perm-1")
    try:
        service.verify(employee, secret)
    except Exception:
        pass
    assert security_log.recent() == []


def test_old_entries_trimmed(redis_client):
    log = SecurityLog(redis_client)
    log.record_scan(Direction.GATE_OUT, "p", "e", "g", START_TS - 40 * 86400)
    log.record_scan(Direction.GATE_IN, "p", "e", "g", START_TS)
    assert redis_client.zcard(SECURITY_LOG_KEY) == 1
    assert log.recent()[0]["action"] == events.GATE_IN


def test_identical_failures_kept_separately(redis_client):
    log = SecurityLog(redis_client)
    log.record_failure("g", "unknown-token", START_TS)
    log.record_failure("g", "unknown-token", START_TS)
    assert len(log.recent()) == 2


def test_write_failure_does_not_raise(caplog):
    from loguru import logger

    class BrokenRedis:
        def zadd(self, *a, **k):
            raise ConnectionError("down")

    handler_id = logger.add(caplog.handler, level="ERROR")
    try:
        entry = SecurityLog(BrokenRedis()).record_scan(
            Direction.GATE_OUT, "perm-9", "e", "g", START_TS
        )
    finally:
        logger.remove(handler_id)
    assert entry["action"] == events.GATE_OUT
    assert "Failed to write security log for permission perm-9" in caplog.text
