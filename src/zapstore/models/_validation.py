"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used by ``__post_init__``
methods in sibling model modules to enforce runtime type constraints on
records arriving from untrusted relays.
"""

from __future__ import annotations

from typing import Any


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_int(value: Any, name: str, *, minimum: int = 0) -> None:
    """Raise if *value* is not an ``int`` (``bool`` excluded) of at least *minimum*."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")


def validate_str(value: Any, name: str) -> None:
    """Raise ``TypeError`` if *value* is not a ``str``."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")


def validate_str_not_empty(value: Any, name: str) -> None:
    """Raise if *value* is not a non-empty ``str``."""
    validate_str(value, name)
    if not value:
        raise ValueError(f"{name} must not be empty")


def freeze_tags(value: Any, name: str) -> tuple[tuple[str, ...], ...]:
    """Convert a list-of-lists tag array into nested tuples of ``str``.

    Raises:
        TypeError: If *value* is not a sequence of sequences of strings.
    """
    if isinstance(value, str) or not isinstance(value, list | tuple):
        raise TypeError(f"{name} must be a list, got {type(value).__name__}")
    frozen: list[tuple[str, ...]] = []
    for i, tag in enumerate(value):
        if isinstance(tag, str) or not isinstance(tag, list | tuple):
            raise TypeError(f"{name}[{i}] must be a list, got {type(tag).__name__}")
        for item in tag:
            validate_str(item, f"{name}[{i}] element")
        frozen.append(tuple(tag))
    return tuple(frozen)


def freeze_str_tuple(value: Any, name: str) -> tuple[str, ...]:
    """Convert a sequence of strings into a tuple, rejecting bare strings."""
    if isinstance(value, str) or not isinstance(value, list | tuple | set | frozenset):
        raise TypeError(f"{name} must be a sequence of str, got {type(value).__name__}")
    for item in value:
        validate_str(item, f"{name} element")
    return tuple(value)
