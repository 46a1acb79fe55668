"""Redis-backed permission store.

Permission records are created and approved by the external approval
service and pushed here through :meth:`RedisPermissionStore.sync_permission`.
Gate pass fields are only ever written through :meth:`update`, which runs the
caller's check-and-mutate function inside an optimistic ``WATCH``/``MULTI``
transaction on the record key. A concurrent write to the same record aborts
the transaction and the whole check runs again against the fresh record, so
issuance and verification on one permission are linearizable.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol

import redis
from loguru import logger
from pydantic import ValidationError
from redis.exceptions import RedisError, WatchError

from config import GATEPASS_SETTINGS
from modules.gatepass_errors import ConsistencyError, NotFoundError
from modules.gatepass_tokens import digest
from schemas.gatepass import Direction, GatePass, Permission
from utils.redis import PERMISSION_START_INDEX, permission_key, secret_key

logger = logger.bind(module="permission_store")

Mutator = Callable[[Permission], Permission]


class StoreUnavailableError(RuntimeError):
    """Raised when Redis cannot be reached or returns unreadable data."""


class PermissionStore(Protocol):
    """Persistence adapter used by the gate pass service."""

    def get_permission(self, permission_id: str) -> Optional[Permission]: ...

    def sync_permission(self, permission: Permission) -> Permission: ...

    def resolve_secret(self, token: str) -> Optional[tuple[str, Direction]]: ...

    def update(self, permission_id: str, mutate: Mutator) -> Permission: ...

    def list_starting_between(self, start: float, end: float) -> list[Permission]: ...


def _decode_permission(permission_id: str, raw: str | bytes) -> Permission:
    try:
        return Permission.model_validate_json(raw)
    except ValidationError as exc:
        logger.exception("corrupt permission record {}", permission_id)
        raise StoreUnavailableError("corrupt permission record") from exc


class RedisPermissionStore:
    """Store permissions as JSON documents with a secret digest index."""

    def __init__(self, redis_client: redis.Redis, max_retries: int | None = None) -> None:
        self._redis = redis_client
        self.max_retries = max_retries or GATEPASS_SETTINGS.max_update_retries

    # get_permission routine
    def get_permission(self, permission_id: str) -> Optional[Permission]:
        """Return the permission ``permission_id`` or ``None``."""
        try:
            raw = self._redis.get(permission_key(permission_id))
        except RedisError as exc:
            logger.exception("failed to fetch permission {}: {}", permission_id, exc)
            raise StoreUnavailableError("failed to fetch permission") from exc
        if raw is None:
            return None
        return _decode_permission(permission_id, raw)

    # sync_permission routine
    def sync_permission(self, permission: Permission) -> Permission:
        """Upsert the approval-owned fields of ``permission``.

        Gate pass fields are owned by this service: those already stored are
        preserved and any supplied on ``permission`` are ignored.
        """
        key = permission_key(permission.id)

        def _merge(pipe) -> Permission:
            raw = pipe.get(key)
            if raw is None:
                return permission.model_copy(
                    update={"gate_out": GatePass(), "gate_in": GatePass()}
                )
            current = _decode_permission(permission.id, raw)
            return permission.model_copy(
                update={"gate_out": current.gate_out, "gate_in": current.gate_in}
            )

        def _write(pipe, merged: Permission) -> None:
            pipe.set(key, merged.model_dump_json())
            pipe.zadd(PERMISSION_START_INDEX, {merged.id: merged.window.start})

        merged = self._transaction(key, _merge, _write)
        logger.info(
            "synced permission {} (employee {}, status {})",
            merged.id,
            merged.employee_id,
            merged.status,
        )
        return merged

    # resolve_secret routine
    def resolve_secret(self, token: str) -> Optional[tuple[str, Direction]]:
        """Return ``(permission_id, direction)`` for a live ``token``."""
        try:
            ref = self._redis.get(secret_key(digest(token)))
        except RedisError as exc:
            logger.exception("failed to resolve gate pass token: {}", exc)
            raise StoreUnavailableError("failed to resolve token") from exc
        if not ref:
            return None
        if isinstance(ref, bytes):
            ref = ref.decode()
        permission_id, _, direction = ref.rpartition(":")
        try:
            return permission_id, Direction(direction)
        except ValueError:
            logger.error("malformed token index entry {!r}", ref)
            return None

    # update routine
    def update(self, permission_id: str, mutate: Mutator) -> Permission:
        """Atomically apply ``mutate`` to the stored permission.

        ``mutate`` receives a private copy of the current record and returns
        the record to persist. Exceptions it raises abort the update without
        writing anything. Token digests added or replaced by the mutation
        are re-indexed in the same transaction.
        """
        key = permission_key(permission_id)
        state: dict[str, Permission] = {}

        def _apply(pipe) -> Permission:
            raw = pipe.get(key)
            if raw is None:
                raise NotFoundError(f"Permission {permission_id} not found")
            current = _decode_permission(permission_id, raw)
            updated = mutate(current.model_copy(deep=True))
            for direction in Direction:
                new_hash = updated.gate(direction).secret_hash
                if new_hash and new_hash != current.gate(direction).secret_hash:
                    if pipe.exists(secret_key(new_hash)):
                        raise ConsistencyError("Token collision; request a new gate pass")
            state["current"] = current
            return updated

        def _write(pipe, updated: Permission) -> None:
            current = state["current"]
            pipe.set(key, updated.model_dump_json())
            for direction in Direction:
                old_hash = current.gate(direction).secret_hash
                new_hash = updated.gate(direction).secret_hash
                if old_hash == new_hash:
                    continue
                if old_hash:
                    pipe.delete(secret_key(old_hash))
                if new_hash:
                    pipe.set(secret_key(new_hash), f"{permission_id}:{direction.value}")

        return self._transaction(key, _apply, _write)

    # list_starting_between routine
    def list_starting_between(self, start: float, end: float) -> list[Permission]:
        """Return permissions whose window starts in ``[start, end)``."""
        try:
            ids = self._redis.zrangebyscore(PERMISSION_START_INDEX, start, f"({end}")
            if not ids:
                return []
            raws = self._redis.mget([permission_key(i) for i in ids])
        except RedisError as exc:
            logger.exception("failed to list permissions: {}", exc)
            raise StoreUnavailableError("failed to list permissions") from exc
        return [
            _decode_permission(pid, raw) for pid, raw in zip(ids, raws) if raw is not None
        ]

    def _transaction(self, key: str, read, write) -> Permission:
        """Run ``read`` then ``write`` under ``WATCH key``, retrying on conflict."""
        for attempt in range(1, self.max_retries + 1):
            try:
                with self._redis.pipeline() as pipe:
                    pipe.watch(key)
                    result = read(pipe)
                    pipe.multi()
                    write(pipe, result)
                    pipe.execute()
                    return result
            except WatchError:
                logger.debug("write conflict on {} (attempt {})", key, attempt)
                continue
            except RedisError as exc:
                logger.exception("redis failure while updating {}: {}", key, exc)
                raise StoreUnavailableError("failed to update permission") from exc
        logger.error("gave up updating {} after {} conflicts", key, self.max_retries)
        raise ConsistencyError("Concurrent update conflict; please retry")
