"""Key validation shared by every cache operation."""

from typing import Any


def is_valid_key(key: Any) -> bool:
    """A key is valid when it is a string; None and other types are not."""
    return isinstance(key, str)
