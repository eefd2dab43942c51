"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used by ``__post_init__`` and
``from_dict`` methods in sibling model modules to enforce runtime type
constraints and deep immutability. All helpers raise ``TypeError`` or
``ValueError``; the upper layers translate them into domain errors.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


_HEX_DIGITS = frozenset("0123456789abcdef")


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_int(value: Any, name: str, *, minimum: int = 0, maximum: int | None = None) -> None:
    """Raise if *value* is not an ``int`` (``bool`` excluded) within bounds."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise ValueError(f"{name} must be <= {maximum}, got {value}")


def validate_timestamp(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative ``int`` (``bool`` excluded)."""
    validate_int(value, name)


def validate_str(value: Any, name: str) -> None:
    """Raise ``TypeError`` if *value* is not a ``str``."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")


def is_lower_hex(value: Any, length: int) -> bool:
    """Return True if *value* is a lowercase hex string of exactly *length* chars."""
    return isinstance(value, str) and len(value) == length and _HEX_DIGITS.issuperset(value)


def validate_hex(value: Any, length: int, name: str) -> None:
    """Raise if *value* is not a lowercase hex string of exactly *length* chars."""
    validate_str(value, name)
    if not is_lower_hex(value, length):
        raise ValueError(f"{name} must be {length} lowercase hex characters")


def is_tag_list(value: Any) -> bool:
    """Return True if *value* is a sequence of sequences of ``str``.

    Strings themselves are sequences, so they are excluded at both levels.
    """
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        return False
    for tag in value:
        if isinstance(tag, (str, bytes)) or not isinstance(tag, Sequence):
            return False
        if not all(isinstance(item, str) for item in tag):
            return False
    return True


def freeze_tags(value: Any, name: str = "tags") -> tuple[tuple[str, ...], ...]:
    """Validate a tag list and return a deeply immutable copy.

    Raises:
        TypeError: If *value* is not a sequence of sequences of strings.
    """
    if not is_tag_list(value):
        raise TypeError(f"{name} must be a sequence of sequences of str")
    return tuple(tuple(tag) for tag in value)
