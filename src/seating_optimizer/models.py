"""Data models for the seating optimizer."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple
import math

STRENGTH_MIN = -5
STRENGTH_MAX = 5


def parse_pipe_list(value: object) -> List[str]:
    """Split a pipe separated string into a list.

    Empty values such as ``""`` or ``None`` return an empty list.
    ``pandas`` often provides ``float('nan')`` for missing values which is
    also treated as empty.
    """
    if value is None:
        return []
    if isinstance(value, float) and math.isnan(value):
        return []
    text = str(value).strip()
    if not text or text.lower() == "nan":
        return []
    return [part.strip() for part in text.split("|") if part.strip()]


def enum_value(value: object) -> str:
    """Return the plain string behind an enum member or raw value."""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class RsvpStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    DECLINED = "declined"


class RelationshipType(str, Enum):
    PARTNER = "partner"
    FAMILY = "family"
    FRIEND = "friend"
    COLLEAGUE = "colleague"
    ACQUAINTANCE = "acquaintance"
    AVOID = "avoid"


class TableShape(str, Enum):
    ROUND = "round"
    RECTANGLE = "rectangle"
    SQUARE = "square"
    OVAL = "oval"
    HALF_ROUND = "half-round"
    SERPENTINE = "serpentine"
    OTHER = "other"

    @classmethod
    def parse(cls, value: object) -> "TableShape":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


class ConstraintKind(str, Enum):
    MUST_SIT_TOGETHER = "must_sit_together"
    MUST_NOT_SIT_TOGETHER = "must_not_sit_together"
    FIXED_TABLE = "fixed_table"

    @classmethod
    def parse(cls, value: object) -> "ConstraintKind":
        """Accept enum values, the ``same_table``/``different_table`` aliases and camelCase."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        if text != text.lower() and text != text.upper():
            text = "".join("_" + ch if ch.isupper() else ch for ch in text).lstrip("_")
        key = text.lower().replace("-", "_")
        key = _CONSTRAINT_ALIASES.get(key, key)
        return cls(key)


_CONSTRAINT_ALIASES = {
    "same_table": "must_sit_together",
    "different_table": "must_not_sit_together",
    "fixed": "fixed_table",
}


class Priority(str, Enum):
    REQUIRED = "required"
    PREFERRED = "preferred"
    OPTIONAL = "optional"


class UnassignedReason(str, Enum):
    NO_CAPACITY = "no-capacity"
    CONSTRAINT_DEADLOCK = "constraint-deadlock"


@dataclass
class Relationship:
    """Relationship between two guests."""

    a: str
    b: str
    relation: str = RelationshipType.FRIEND.value
    strength: int = 0
    notes: str = ""

    @property
    def pair(self) -> Tuple[str, str]:
        """Unordered pair key."""
        return (self.a, self.b) if self.a <= self.b else (self.b, self.a)


@dataclass
class Guest:
    """Representation of an event guest."""

    id: str
    name: str = ""
    rsvp: str = RsvpStatus.CONFIRMED.value
    table_id: Optional[str] = None
    seat_index: Optional[int] = None
    relationships: List[Relationship] = field(default_factory=list)
    group: str = ""
    meal_preference: str = ""

    @property
    def confirmed(self) -> bool:
        return enum_value(self.rsvp).strip().lower() == RsvpStatus.CONFIRMED.value


@dataclass
class Table:
    """Dinner table definition."""

    id: str
    capacity: int
    name: str = ""
    shape: str = TableShape.ROUND.value
    tags: List[str] = field(default_factory=list)


@dataclass
class Constraint:
    """Hard (``required``) or soft seating rule over a set of guests."""

    id: str
    kind: ConstraintKind
    guest_ids: List[str]
    table_id: Optional[str] = None
    priority: Priority = Priority.REQUIRED
    description: str = ""

    def __post_init__(self) -> None:
        self.kind = ConstraintKind.parse(self.kind)
        if not isinstance(self.priority, Priority):
            self.priority = Priority(str(self.priority).strip().lower())

    @property
    def is_hard(self) -> bool:
        return self.priority == Priority.REQUIRED

    @classmethod
    def must_sit_together(cls, *guest_ids: str, id: Optional[str] = None,
                          priority: Priority = Priority.REQUIRED) -> "Constraint":
        return cls(id or _auto_id("together", guest_ids), ConstraintKind.MUST_SIT_TOGETHER,
                   list(guest_ids), priority=priority)

    @classmethod
    def must_not_sit_together(cls, *guest_ids: str, id: Optional[str] = None,
                              priority: Priority = Priority.REQUIRED) -> "Constraint":
        return cls(id or _auto_id("apart", guest_ids), ConstraintKind.MUST_NOT_SIT_TOGETHER,
                   list(guest_ids), priority=priority)

    @classmethod
    def fixed_table(cls, guest_id: str, table_id: str, id: Optional[str] = None,
                    priority: Priority = Priority.REQUIRED) -> "Constraint":
        return cls(id or _auto_id("fixed", (guest_id, table_id)), ConstraintKind.FIXED_TABLE,
                   [guest_id], table_id=table_id, priority=priority)


def _auto_id(prefix: str, parts) -> str:
    return f"{prefix}:{'|'.join(parts)}"


# ----------------------------- output values -----------------------------
@dataclass(frozen=True)
class Placement:
    """Decision for one confirmed guest."""

    guest_id: str
    table_id: Optional[str] = None
    seat_index: Optional[int] = None
    reason: Optional[UnassignedReason] = None

    @property
    def seated(self) -> bool:
        return self.table_id is not None


@dataclass(frozen=True)
class Assignment:
    """Immutable guest to table/seat mapping produced by the optimizer."""

    placements: Tuple[Placement, ...] = ()

    def get_placement(self, guest_id: str) -> Optional[Placement]:
        for p in self.placements:
            if p.guest_id == guest_id:
                return p
        return None

    def get_table_for_guest(self, guest_id: str) -> Optional[str]:
        p = self.get_placement(guest_id)
        return p.table_id if p else None

    def get_guests_at_table(self, table_id: str) -> List[str]:
        return [p.guest_id for p in self.placements if p.table_id == table_id]

    @property
    def unassigned(self) -> List[str]:
        return [p.guest_id for p in self.placements if not p.seated]

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {p.guest_id: p.table_id for p in self.placements}


@dataclass
class OptimizeOptions:
    """Knobs recognised by :func:`seating_optimizer.optimize`."""

    max_passes: int = 50
    time_budget_ms: Optional[int] = 2000
    preserve_existing: bool = True
    respect_fixed_only: bool = False
    auto_drop_conflicts: bool = False

    _CAMEL = {
        "maxPasses": "max_passes",
        "timeBudgetMs": "time_budget_ms",
        "preserveExisting": "preserve_existing",
        "respectFixedOnly": "respect_fixed_only",
        "autoDropConflicts": "auto_drop_conflicts",
    }

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "OptimizeOptions":
        """Build options from snake_case or camelCase keys; unknown keys are ignored."""
        kwargs = {}
        for key, value in values.items():
            name = cls._CAMEL.get(key, key)
            if name in cls.__dataclass_fields__:
                kwargs[name] = value
        return cls(**kwargs)
