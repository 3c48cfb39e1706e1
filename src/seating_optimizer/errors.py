"""Error taxonomy for the seating optimizer.

Exceptions are raised inside the package and converted into an
``OptimizeError`` value by :func:`seating_optimizer.solver.optimize`, so no
exception escapes to the caller of the public entry point.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .constraints import Conflict


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid-input"
    CONSTRAINT_CONFLICT = "constraint-conflict"


class SeatingError(Exception):
    """Base class for optimizer errors."""

    kind: ErrorKind = ErrorKind.INVALID_INPUT


class InvalidInput(SeatingError, ValueError):
    """Malformed input such as a relationship to an unknown guest."""

    kind = ErrorKind.INVALID_INPUT


class ConstraintConflict(SeatingError):
    """Hard constraints contradict each other."""

    kind = ErrorKind.CONSTRAINT_CONFLICT

    def __init__(self, conflicts: Tuple["Conflict", ...]) -> None:
        self.conflicts = tuple(conflicts)
        summary = "; ".join(c.message for c in self.conflicts)
        super().__init__(f"{len(self.conflicts)} constraint conflict(s): {summary}")


@dataclass(frozen=True)
class OptimizeError:
    """Typed error result returned across the optimizer boundary."""

    kind: ErrorKind
    message: str
    conflicts: Tuple["Conflict", ...] = ()

    @classmethod
    def from_exception(cls, exc: SeatingError) -> "OptimizeError":
        return cls(
            kind=exc.kind,
            message=str(exc),
            conflicts=tuple(getattr(exc, "conflicts", ())),
        )
