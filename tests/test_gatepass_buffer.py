"""Re-entry buffer arithmetic."""

import pytest

from modules.gatepass_errors import TooEarlyError
from modules.gatepass_service import GatePassService
from utils.time import ceil_minutes


@pytest.mark.parametrize(
    "seconds, minutes",
    [(0, 0), (-5, 0), (0.001, 1), (59, 1), (60, 1), (61, 2), (299.5, 5), (300, 5)],
)
def test_ceil_minutes(seconds, minutes):
    assert ceil_minutes(seconds) == minutes


@pytest.mark.parametrize(
    "elapsed, wait",
    [(0, 5), (1, 5), (59, 5), (60, 4), (61, 4), (239, 2), (240, 1), (299, 1), (299.9, 1)],
)
def test_wait_minutes_reported_as_ceiling(
    service, approved, employee, guard, clock, elapsed, wait
):
    service.verify(guard, service.issue_gate_out(employee, "perm-1"))
    clock.advance(seconds=elapsed)
    with pytest.raises(TooEarlyError) as exc:
        service.issue_gate_in(employee, "perm-1")
    assert exc.value.wait_minutes == wait


@pytest.mark.parametrize("elapsed", [300, 301, 3600])
def test_gate_in_allowed_once_buffer_elapsed(service, approved, employee, guard, clock, elapsed):
    service.verify(guard, service.issue_gate_out(employee, "perm-1"))
    clock.advance(seconds=elapsed)
    assert service.issue_gate_in(employee, "perm-1")


def test_buffer_is_configurable(store, clock, approved, employee, guard):
    service = GatePassService(store, clock, min_buffer_minutes=15)
    service.verify(guard, service.issue_gate_out(employee, "perm-1"))
    clock.advance(minutes=10)
    with pytest.raises(TooEarlyError) as exc:
        service.issue_gate_in(employee, "perm-1")
    assert exc.value.wait_minutes == 5


def test_buffer_defaults_to_settings(store, clock, approved, employee, guard):
    from config import set_config

    set_config({"gatepass_min_buffer_minutes": 2})
    service = GatePassService(store, clock)
    assert service.min_buffer == 120
    service.verify(guard, service.issue_gate_out(employee, "perm-1"))
    clock.advance(minutes=2)
    assert service.issue_gate_in(employee, "perm-1")


def test_zero_buffer_allows_immediate_gate_in(store, clock, approved, employee, guard):
    service = GatePassService(store, clock, min_buffer_minutes=0)
    service.verify(guard, service.issue_gate_out(employee, "perm-1"))
    assert service.issue_gate_in(employee, "perm-1")


def test_too_early_is_not_logged_as_fault(service, approved, employee, guard, caplog):
    from loguru import logger

    handler_id = logger.add(caplog.handler, level="INFO")
    try:
        service.verify(guard, service.issue_gate_out(employee, "perm-1"))
        with pytest.raises(TooEarlyError):
            service.issue_gate_in(employee, "perm-1")
    finally:
        logger.remove(handler_id)
    assert "minute(s) early" in caplog.text
    assert not [r for r in caplog.records if r.levelname in ("ERROR", "CRITICAL")]
