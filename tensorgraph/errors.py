"""Error type, assertion helper and small formatting utilities."""

from __future__ import annotations

from collections.abc import Iterable

__all__ = ["TensorGraphError", "check", "vec_to_string"]


class TensorGraphError(RuntimeError):
    """Raised when an internal invariant or a user-supplied argument is invalid."""


def check(condition: object, message: str = "") -> None:
    """Raise :class:`TensorGraphError` with ``message`` unless ``condition`` holds."""
    if not condition:
        raise TensorGraphError(message or "Assertion failed")


def vec_to_string(values: Iterable[object]) -> str:
    """Render a sequence as ``[a,b,c]``."""
    return "[" + ",".join(str(value) for value in values) + "]"