"""Utility helper functions."""

import time
import uuid


def generate_uuid() -> str:
    """
    Generate a new UUID4 hex string.

    Returns:
        UUID4 hex string
    """
    return uuid.uuid4().hex


def now_ns() -> int:
    """
    Get current wall-clock time in nanoseconds.

    Returns:
        Nanoseconds since the epoch
    """
    return time.time_ns()
