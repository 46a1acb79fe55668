"""Shared pytest fixtures for gate pass testing."""

import sys
from pathlib import Path

import fakeredis
import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from config import set_config  # noqa: E402
from modules.gatepass_service import GatePassService  # noqa: E402
from modules.permission_store import RedisPermissionStore  # noqa: E402
from modules.security_log import SecurityLog  # noqa: E402
from schemas.gatepass import Caller, Permission, PermissionWindow  # noqa: E402

# 2025-10-09 10:13:20 UTC
START_TS = 1_760_004_800.0


class ManualClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: float = START_TS):
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float = 0, minutes: float = 0) -> None:
        self.current += seconds + minutes * 60


@pytest.fixture(autouse=True)
def _reset_config():
    set_config({})
    yield
    set_config({})


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def redis_client():
    server = fakeredis.FakeServer()
    client = fakeredis.FakeRedis(server=server, decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def store(redis_client):
    return RedisPermissionStore(redis_client)


@pytest.fixture
def security_log(redis_client):
    return SecurityLog(redis_client)


@pytest.fixture
def service(store, clock, security_log):
    return GatePassService(store, clock, security_log=security_log, min_buffer_minutes=5)


def make_permission(
    permission_id: str = "perm-1",
    employee_id: str = "emp-1",
    status: str = "approved",
    start: float = START_TS,
    hours: float = 2,
) -> Permission:
    return Permission(
        id=permission_id,
        employee_id=employee_id,
        requested_by="user-1",
        window=PermissionWindow(start=start, end=start + hours * 3600, hours=hours),
        status=status,
    )


@pytest.fixture
def approved(store):
    return store.sync_permission(make_permission())


@pytest.fixture
def employee():
    return Caller(id="user-1", employee_id="emp-1", role="employee")


@pytest.fixture
def other_employee():
    return Caller(id="user-2", employee_id="emp-2", role="employee")


@pytest.fixture
def guard():
    return Caller(id="guard-1", role="security")


@pytest.fixture
def hr_user():
    return Caller(id="hr-1", employee_id="emp-9", role="hr")
