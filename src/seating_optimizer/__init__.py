"""Seating optimizer package."""
from .models import (
    Assignment,
    Constraint,
    ConstraintKind,
    Guest,
    OptimizeOptions,
    Placement,
    Priority,
    Relationship,
    RelationshipType,
    RsvpStatus,
    Table,
    TableShape,
    UnassignedReason,
)
from .errors import ConstraintConflict, ErrorKind, InvalidInput, OptimizeError, SeatingError
from .constraints import Conflict, ConflictKind, ConstraintReport, validate_constraints
from .csv_loader import (
    load_guests,
    load_relationships,
    load_tables,
    load_constraints,
    load_all,
)
from .results import Diagnostics, OptimizeResult
from .solver import SeatingModel, optimize

__all__ = [
    "Assignment",
    "Constraint",
    "ConstraintKind",
    "Guest",
    "OptimizeOptions",
    "Placement",
    "Priority",
    "Relationship",
    "RelationshipType",
    "RsvpStatus",
    "Table",
    "TableShape",
    "UnassignedReason",
    "ConstraintConflict",
    "ErrorKind",
    "InvalidInput",
    "OptimizeError",
    "SeatingError",
    "Conflict",
    "ConflictKind",
    "ConstraintReport",
    "validate_constraints",
    "load_guests",
    "load_relationships",
    "load_tables",
    "load_constraints",
    "load_all",
    "Diagnostics",
    "OptimizeResult",
    "SeatingModel",
    "optimize",
]
