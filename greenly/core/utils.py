"""
Shared utility functions for the greenly platform.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.
    
    Args:
        prefix: Optional prefix (e.g., "tok", "rtok")
        
    Returns:
        A unique ID like "tok_a1b2c3d4e5f6"
    """
    uid = str(uuid.uuid4())[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def _as_number(value: Any) -> int | None:
    # ASCII digits only; int() also accepts "5_0" and "٥"
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    if text.isascii() and text.isdigit():
        return int(text)
    return None


def same_id(left: Any, right: Any) -> bool:
    """
    Compare two identifiers that may arrive as ints or strings.
    
    Route parameters are always strings, stored ids are integers,
    so "05" and 5 name the same record. Anything that is not a plain
    run of digits only matches the identical string.
    """
    if left is None or right is None:
        return False
    left_number, right_number = _as_number(left), _as_number(right)
    if left_number is not None and right_number is not None:
        return left_number == right_number
    return str(left) == str(right)
