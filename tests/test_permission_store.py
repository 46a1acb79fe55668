"""Tests for the Redis permission store."""

import json

import pytest
import redis
from loguru import logger

from conftest import START_TS, make_permission
from modules.gatepass_errors import ConsistencyError, InvalidStateError, NotFoundError
from modules.permission_store import RedisPermissionStore, StoreUnavailableError
from schemas.gatepass import Direction, GatePass
from utils.redis import PERMISSION_START_INDEX, permission_key, secret_key


def test_sync_creates_record_and_index(store, redis_client):
    perm = store.sync_permission(make_permission())
    assert store.get_permission("perm-1") == perm
    assert redis_client.zscore(PERMISSION_START_INDEX, "perm-1") == START_TS


def test_get_missing_permission_returns_none(store):
    assert store.get_permission("nope") is None


def test_sync_preserves_gate_fields(store):
    store.sync_permission(make_permission())

    def _verify_out(perm):
        perm.gate_out = GatePass(secret_hash="a" * 64, issued_at=1.0, verified_at=2.0)
        return perm

    store.update("perm-1", _verify_out)
    synced = store.sync_permission(make_permission(status="cancelled"))
    assert synced.status == "cancelled"
    assert synced.gate_out.verified_at == 2.0
    assert store.get_permission("perm-1").gate_out.secret_hash == "a" * 64


def test_update_indexes_new_secret_and_drops_replaced_one(store, redis_client):
    store.sync_permission(make_permission())

    def _set(hash_value):
        def _mutate(perm):
            perm.gate_out = GatePass(secret_hash=hash_value, issued_at=START_TS)
            return perm

        return _mutate

    store.update("perm-1", _set("1" * 64))
    assert redis_client.get(secret_key("1" * 64)) == "perm-1:gate-out"
    store.update("perm-1", _set("2" * 64))
    assert redis_client.get(secret_key("1" * 64)) is None
    assert redis_client.get(secret_key("2" * 64)) == "perm-1:gate-out"


def test_resolve_secret_round_trip(store):
    from modules.gatepass_tokens import digest

    store.sync_permission(make_permission(permission_id="perm:with:colons"))
    token = "x" * 43

    def _issue_in(perm):
        perm.gate_in = GatePass(secret_hash=digest(token), issued_at=START_TS)
        return perm

    store.update("perm:with:colons", _issue_in)
    assert store.resolve_secret(token) == ("perm:with:colons", Direction.GATE_IN)
    assert store.resolve_secret("y" * 43) is None


def test_update_missing_record_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.update("ghost", lambda perm: perm)


def test_failed_mutation_writes_nothing(store, redis_client):
    store.sync_permission(make_permission())
    before = redis_client.get(permission_key("perm-1"))

    def _fail(perm):
        perm.gate_out = GatePass(secret_hash="3" * 64, issued_at=START_TS)
        raise InvalidStateError("nope")

    with pytest.raises(InvalidStateError):
        store.update("perm-1", _fail)
    assert redis_client.get(permission_key("perm-1")) == before
    assert redis_client.get(secret_key("3" * 64)) is None


def test_update_retries_after_concurrent_write(store, redis_client):
    """A write between read and commit forces the mutation to rerun."""
    store.sync_permission(make_permission())
    seen = []

    def _mutate(perm):
        seen.append(perm.gate_out.verified_at)
        if len(seen) == 1:
            # another request commits while this one is mid-flight
            other = json.loads(redis_client.get(permission_key("perm-1")))
            other["gate_out"]["verified_at"] = 99.0
            redis_client.set(permission_key("perm-1"), json.dumps(other))
        perm.gate_in = GatePass(issued_at=1.0)
        return perm

    result = store.update("perm-1", _mutate)
    assert seen == [None, 99.0]
    assert result.gate_out.verified_at == 99.0
    assert store.get_permission("perm-1").gate_in.issued_at == 1.0


def test_update_gives_up_after_retry_limit(redis_client):
    store = RedisPermissionStore(redis_client, max_retries=2)
    store.sync_permission(make_permission())
    calls = []

    def _always_conflicting(perm):
        calls.append(1)
        redis_client.set(permission_key("perm-1"), perm.model_dump_json())
        return perm

    with pytest.raises(ConsistencyError):
        store.update("perm-1", _always_conflicting)
    assert len(calls) == 2


def test_token_collision_refused(store):
    store.sync_permission(make_permission())
    store.sync_permission(make_permission(permission_id="perm-2"))

    def _issue(perm):
        perm.gate_out = GatePass(secret_hash="4" * 64, issued_at=START_TS)
        return perm

    store.update("perm-1", _issue)
    with pytest.raises(ConsistencyError):
        store.update("perm-2", _issue)
    assert store.get_permission("perm-2").gate_out.secret_hash is None


def test_list_starting_between(store):
    store.sync_permission(make_permission("a", start=START_TS - 10))
    store.sync_permission(make_permission("b", start=START_TS))
    store.sync_permission(make_permission("c", start=START_TS + 10))
    ids = [p.id for p in store.list_starting_between(START_TS - 10, START_TS + 10)]
    assert ids == ["a", "b"]


class FailingRedis:
    def get(self, *args, **kwargs):
        raise redis.RedisError("boom")


def test_redis_failure_logged_and_raised(caplog):
    logger.remove()
    handler_id = logger.add(caplog.handler, level="ERROR")
    try:
        store = RedisPermissionStore(FailingRedis())
        with pytest.raises(StoreUnavailableError):
            store.get_permission("perm-1")
    finally:
        logger.remove(handler_id)
    assert "failed to fetch permission perm-1" in caplog.text


def test_corrupt_record_reported(store, redis_client):
    redis_client.set(permission_key("bad"), "{not json")
    with pytest.raises(StoreUnavailableError):
        store.get_permission("bad")
