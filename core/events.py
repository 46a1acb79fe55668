"""Centralized gate event name constants.

This module defines the action identifiers written to the security log.
Using constants avoids typos when recording or filtering entries.
"""

# Successful scans
GATE_OUT = "GATE_OUT"
GATE_IN = "GATE_IN"

# Rejected scans
VERIFICATION_FAILED = "VERIFICATION_FAILED"

# Entry outcomes
SUCCESS = "SUCCESS"
FAILURE = "FAILURE"

# All events set for easy validation
ALL_EVENTS = {
    GATE_OUT,
    GATE_IN,
    VERIFICATION_FAILED,
}

__all__ = [
    "GATE_OUT",
    "GATE_IN",
    "VERIFICATION_FAILED",
    "SUCCESS",
    "FAILURE",
    "ALL_EVENTS",
]
