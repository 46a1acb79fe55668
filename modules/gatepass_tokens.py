"""Gate pass token minting and validation.

Tokens are random URL-safe strings drawn from :mod:`secrets`. They carry no
permission id or direction; the store resolves them by lookup. Only the
SHA-256 digest of a token is ever persisted.
"""

from __future__ import annotations

import hashlib
import re
import secrets

from config import GATEPASS_SETTINGS
from schemas.gatepass import Direction

_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]+$")

# Shortest token accepted by ``is_well_formed`` (16 random bytes).
MIN_TOKEN_LENGTH = 22
MAX_TOKEN_LENGTH = 512


# mint routine
def mint(permission_id: str, direction: Direction, nbytes: int | None = None) -> str:
    """Return a fresh unguessable token for ``permission_id`` and ``direction``.

    The arguments only scope the call; no part of them is encoded in the
    returned string.
    """
    if not permission_id:
        raise ValueError("permission_id is required")
    Direction(direction)
    size = nbytes or GATEPASS_SETTINGS.token_bytes
    if size < 16:
        raise ValueError("token size must be at least 16 bytes")
    return secrets.token_urlsafe(size)


def is_well_formed(token: str | None) -> bool:
    """Return True if ``token`` could have been produced by :func:`mint`."""
    if not token or not isinstance(token, str):
        return False
    if not MIN_TOKEN_LENGTH <= len(token) <= MAX_TOKEN_LENGTH:
        return False
    return bool(_TOKEN_RE.match(token))


def digest(token: str) -> str:
    """Return the hex digest under which ``token`` is indexed."""
    return hashlib.sha256(token.encode()).hexdigest()
