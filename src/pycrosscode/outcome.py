"""Tagged results returned by a resolution.

Supersession is a normal outcome, not an exception: a caller has to
match on :class:`Cancelled` explicitly instead of catching it by accident
alongside real failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, NoReturn, TypeVar

from pycrosscode.exceptions import CrossCodeError, ResolutionCancelledError
from pycrosscode.models.tree import TreeNode

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """The resolution completed. A ``None`` value means "not found"."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_cancelled(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err:
    """The resolution failed; ``error`` is usually a ``SourceUnavailableError``."""

    error: CrossCodeError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_cancelled(self) -> bool:
        return False

    def unwrap(self) -> NoReturn:
        raise self.error


@dataclass(frozen=True, slots=True)
class Cancelled:
    """A newer resolution superseded this one; discard it."""

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_cancelled(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ResolutionCancelledError("Resolution superseded by a newer request")


Resolution = Ok[list[TreeNode] | None] | Err | Cancelled
"""Outcome of :meth:`ResolutionCoordinator.resolve`."""
