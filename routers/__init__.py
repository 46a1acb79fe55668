"""Expose router modules."""

__all__ = [
    "gatepass",
    "health",
]
