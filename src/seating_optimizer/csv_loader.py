"""CSV loading utilities."""
from __future__ import annotations

from pathlib import Path
from typing import IO, Any, Iterable, List, Optional, Tuple, Union

import pandas as pd

from .errors import InvalidInput
from .models import (
    Constraint,
    ConstraintKind,
    Guest,
    Priority,
    Relationship,
    RsvpStatus,
    Table,
    TableShape,
    parse_pipe_list,
)

Source = Union[Path, str, IO[Any]]


def _read(path: Source, required: Iterable[str], label: str) -> pd.DataFrame:
    """Read a CSV as strings and check required columns."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).strip() for c in df.columns]
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise InvalidInput(f"Error in {label}: missing columns: {', '.join(missing)}")
    return df


def _text(row: pd.Series, column: str, default: str = "") -> str:
    value = row.get(column, default)
    return str(value).strip() if value is not None else default


def _int(row: pd.Series, column: str, label: str, default: Optional[int] = None) -> Optional[int]:
    text = _text(row, column)
    if not text:
        return default
    try:
        number = float(text)
        if not number.is_integer():
            raise ValueError(text)
        return int(number)
    except (ValueError, OverflowError):
        raise InvalidInput(f"Error in {label}: {column} must be an integer, got {text!r}") from None


def load_guests(path: Source) -> List[Guest]:
    """Load guests from ``guests.csv``.

    ``rsvp`` defaults to confirmed. ``table_id`` and ``seat_index`` describe the
    current seating, if any.
    """
    df = _read(path, ["id"], "guests.csv")
    guests: List[Guest] = []
    for _, row in df.iterrows():
        gid = _text(row, "id")
        guests.append(
            Guest(
                id=gid,
                name=_text(row, "name") or gid,
                rsvp=_text(row, "rsvp").lower() or RsvpStatus.CONFIRMED.value,
                table_id=_text(row, "table_id") or None,
                seat_index=_int(row, "seat_index", "guests.csv"),
                group=_text(row, "group"),
                meal_preference=_text(row, "meal_preference"),
            )
        )
    return guests


def guest_column_constraints(path: Source) -> List[Constraint]:
    """Required constraints declared through the ``must_with`` and ``must_separate`` guest columns."""
    df = _read(path, ["id"], "guests.csv")
    constraints: List[Constraint] = []
    for _, row in df.iterrows():
        gid = _text(row, "id")
        for other in parse_pipe_list(row.get("must_with", "")):
            constraints.append(Constraint.must_sit_together(gid, other))
        for other in parse_pipe_list(row.get("must_separate", "")):
            constraints.append(Constraint.must_not_sit_together(gid, other))
    return constraints


def load_tables(path: Source) -> List[Table]:
    """Load table definitions. ``id`` falls back to ``name`` for older files."""
    df = _read(path, ["capacity"], "tables.csv")
    if "id" not in df.columns and "name" not in df.columns:
        raise InvalidInput("Error in tables.csv: missing columns: id")
    tables: List[Table] = []
    for _, row in df.iterrows():
        tid = _text(row, "id") or _text(row, "name")
        tables.append(
            Table(
                id=tid,
                name=_text(row, "name") or tid,
                capacity=_int(row, "capacity", "tables.csv", 0),
                shape=TableShape.parse(_text(row, "shape", "round") or "round").value,
                tags=parse_pipe_list(row.get("tags", "")),
            )
        )
    return tables


def load_relationships(path: Source, guest_ids: Optional[set[str]] = None) -> List[Relationship]:
    """Load relationships between guests.

    If ``guest_ids`` is provided it validates that both endpoints exist.
    """
    df = _read(path, ["guest1_id", "guest2_id"], "relationships.csv")
    relationships: List[Relationship] = []
    for _, row in df.iterrows():
        a = _text(row, "guest1_id")
        b = _text(row, "guest2_id")
        if guest_ids is not None and (a not in guest_ids or b not in guest_ids):
            raise InvalidInput(f"Relationship references unknown guest: {a}, {b}")
        relationships.append(
            Relationship(
                a=a,
                b=b,
                relation=(_text(row, "relationship") or _text(row, "type") or "friend").lower(),
                strength=_int(row, "strength", "relationships.csv", 0),
                notes=_text(row, "notes"),
            )
        )
    return relationships


def load_constraints(path: Source) -> List[Constraint]:
    """Load constraints; ``guest_ids`` is a pipe separated list."""
    df = _read(path, ["type", "guest_ids"], "constraints.csv")
    constraints: List[Constraint] = []
    for i, row in df.iterrows():
        try:
            kind = ConstraintKind.parse(_text(row, "type"))
            priority = Priority(_text(row, "priority").lower() or Priority.REQUIRED.value)
        except ValueError as exc:
            raise InvalidInput(f"Error in constraints.csv row {i + 2}: {exc}") from None
        constraints.append(
            Constraint(
                id=_text(row, "id") or f"row-{i + 2}",
                kind=kind,
                guest_ids=parse_pipe_list(row.get("guest_ids", "")),
                table_id=_text(row, "table_id") or None,
                priority=priority,
                description=_text(row, "description"),
            )
        )
    return constraints


def load_all(
    guests_path: Source,
    relationships_path: Source,
    tables_path: Source,
    constraints_path: Optional[Source] = None,
) -> Tuple[List[Guest], List[Relationship], List[Table], List[Constraint]]:
    """Convenience wrapper returning guests, relationships, tables and constraints."""
    guests = load_guests(guests_path)
    guest_ids = {g.id for g in guests}
    relationships = load_relationships(relationships_path, guest_ids)
    tables = load_tables(tables_path)
    if hasattr(guests_path, "seek"):
        guests_path.seek(0)
    constraints = guest_column_constraints(guests_path)
    if constraints_path is not None:
        constraints.extend(load_constraints(constraints_path))
    return guests, relationships, tables, constraints
