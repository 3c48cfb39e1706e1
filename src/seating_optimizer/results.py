"""Translate a solved model into the public ``Assignment`` and ``Diagnostics`` values."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .constraints import Conflict, ConstraintReport
from .errors import OptimizeError
from .models import (
    Assignment,
    Constraint,
    ConstraintKind,
    Guest,
    Placement,
    Relationship,
    Table,
    UnassignedReason,
)
from .scoring import (
    build_relationship_map,
    compute_table_stats,
    grade_tables,
    pair_value_lookup,
    score_assignment,
)


@dataclass(frozen=True)
class RunStats:
    """Search statistics handed over by the solver."""

    passes: int = 0
    stop_reason: str = "converged"
    seed_objective: int = 0
    objective: int = 0
    trace: Tuple[int, ...] = ()


@dataclass(frozen=True)
class UnsatisfiedConstraint:
    constraint_id: str
    guest_ids: Tuple[str, ...]
    reason: UnassignedReason


@dataclass(frozen=True)
class Diagnostics:
    """Summary of an optimization run.

    ``score`` counts relationship strengths only; ``objective`` also includes
    soft (non required) constraint terms and is what the search maximizes.
    ``trace`` holds the objective gain of every accepted improvement move.
    Mappings are read-only views.
    """

    score: int = 0
    objective: int = 0
    initial_score: int = 0
    seed_objective: int = 0
    passes: int = 0
    moves_accepted: int = 0
    stop_reason: str = "converged"
    seated: Mapping[str, bool] = field(default_factory=lambda: MappingProxyType({}))
    unassigned: Mapping[str, UnassignedReason] = field(default_factory=lambda: MappingProxyType({}))
    unsatisfied_constraints: Tuple[UnsatisfiedConstraint, ...] = ()
    dropped_conflicts: Tuple[Conflict, ...] = ()
    ignored_constraints: Tuple[str, ...] = ()
    moved_guests: Tuple[str, ...] = ()
    newly_seated: int = 0
    infeasible_capacity: bool = False
    table_report: Tuple[Mapping[str, object], ...] = ()
    trace: Tuple[int, ...] = ()


@dataclass(frozen=True)
class OptimizeResult:
    """Return value of :func:`seating_optimizer.optimize`."""

    assignment: Optional[Assignment] = None
    diagnostics: Optional[Diagnostics] = None
    error: Optional[OptimizeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ----------------------------- seats -----------------------------
def assign_seats(
    table_of: Mapping[str, Optional[str]],
    tables: Sequence[Table],
    guests: Sequence[Guest],
    groups: Sequence[Sequence[str]],
    preserve: bool = True,
) -> Dict[str, Optional[int]]:
    """Give every seated guest a seat index below its table's capacity.

    Guests that stay at their previous table keep a previous seat that is still
    free and in range. Everyone else takes the lowest free seats, walking
    ``groups`` in order so that members of one group sit side by side when the
    free seats allow it.
    """
    capacity = {t.id: t.capacity for t in tables}
    previous = {g.id: (g.table_id, g.seat_index) for g in guests}
    taken: Dict[str, Set[int]] = {t.id: set() for t in tables}
    seats: Dict[str, Optional[int]] = {}

    if preserve:
        for gid in sorted(table_of):
            table_id = table_of[gid]
            prev_table, prev_seat = previous.get(gid, (None, None))
            if (
                table_id is not None
                and prev_table == table_id
                and isinstance(prev_seat, int)
                and 0 <= prev_seat < capacity[table_id]
                and prev_seat not in taken[table_id]
            ):
                seats[gid] = prev_seat
                taken[table_id].add(prev_seat)

    for group in groups:
        for gid in group:
            if gid in seats:
                continue
            table_id = table_of.get(gid)
            if table_id is None:
                seats[gid] = None
                continue
            seat = 0
            while seat in taken[table_id]:
                seat += 1
            seats[gid] = seat
            taken[table_id].add(seat)
    return seats


# ----------------------------- constraint audit -----------------------------
def unsatisfied_constraints(
    constraints: Sequence[Constraint],
    table_of: Mapping[str, Optional[str]],
    reasons: Mapping[str, UnassignedReason],
) -> List[UnsatisfiedConstraint]:
    """List hard constraints the final assignment does not meet, with a reason code."""
    out: List[UnsatisfiedConstraint] = []
    for c in constraints:
        if not c.is_hard:
            continue
        ids = tuple(c.guest_ids)
        placed = [table_of.get(g) for g in ids]
        if c.kind == ConstraintKind.MUST_SIT_TOGETHER:
            ok = None not in placed and len(set(placed)) == 1
        elif c.kind == ConstraintKind.FIXED_TABLE:
            ok = placed[0] == c.table_id
        else:
            seated = [t for t in placed if t is not None]
            ok = len(seated) == len(set(seated))
        if not ok:
            reason = next((reasons[g] for g in ids if g in reasons), UnassignedReason.CONSTRAINT_DEADLOCK)
            out.append(UnsatisfiedConstraint(c.id, ids, reason))
    return out


# ----------------------------- packaging -----------------------------
def table_report(
    table_of: Mapping[str, Optional[str]], tables: Sequence[Table], value
) -> List[Dict[str, object]]:
    """Per table stats graded A to F, in table input order."""
    members: Dict[str, List[str]] = {t.id: [] for t in tables}
    for gid, table_id in table_of.items():
        if table_id is not None:
            members[table_id].append(gid)
    stats = []
    for t in tables:
        at_table = sorted(members[t.id])
        s = compute_table_stats(at_table, value)
        s["table"] = t.id
        s["capacity"] = t.capacity
        s["seated"] = len(at_table)
        s["members"] = "|".join(at_table)
        stats.append(s)
    return grade_tables(stats)


def package_result(
    guests: Sequence[Guest],
    tables: Sequence[Table],
    relationships: Sequence[Relationship],
    report: ConstraintReport,
    dropped: Sequence[Conflict],
    table_of: Mapping[str, Optional[str]],
    reasons: Mapping[str, UnassignedReason],
    groups: Sequence[Sequence[str]],
    stats: RunStats,
    preserve_existing: bool = True,
) -> OptimizeResult:
    """Build the immutable result. Every confirmed guest gets exactly one placement."""
    confirmed = [g for g in guests if g.confirmed]
    table_ids = {t.id for t in tables}
    value = pair_value_lookup(build_relationship_map(guests, relationships))

    seats = assign_seats(table_of, tables, confirmed, groups, preserve_existing)
    placements = []
    for g in confirmed:
        table_id = table_of.get(g.id)
        if table_id is None:
            placements.append(Placement(g.id, reason=reasons.get(g.id, UnassignedReason.NO_CAPACITY)))
        else:
            placements.append(Placement(g.id, table_id, seats[g.id]))
    assignment = Assignment(tuple(placements))

    previous = {g.id: g.table_id if g.table_id in table_ids else None for g in confirmed}
    moved = tuple(
        g.id for g in confirmed
        if previous[g.id] is not None and previous[g.id] != table_of.get(g.id)
    )
    newly_seated = sum(
        1 for g in confirmed if previous[g.id] is None and table_of.get(g.id) is not None
    )
    unassigned = {p.guest_id: p.reason for p in placements if not p.seated}

    diagnostics = Diagnostics(
        score=score_assignment(table_of, value),
        objective=stats.objective,
        initial_score=score_assignment(previous, value),
        seed_objective=stats.seed_objective,
        passes=stats.passes,
        moves_accepted=len(stats.trace),
        stop_reason=stats.stop_reason,
        seated=MappingProxyType({p.guest_id: p.seated for p in placements}),
        unassigned=MappingProxyType(unassigned),
        unsatisfied_constraints=tuple(unsatisfied_constraints(report.constraints, table_of, unassigned)),
        dropped_conflicts=tuple(dropped),
        ignored_constraints=report.ignored,
        moved_guests=moved,
        newly_seated=newly_seated,
        infeasible_capacity=UnassignedReason.NO_CAPACITY in unassigned.values(),
        table_report=tuple(MappingProxyType(row) for row in table_report(table_of, tables, value)),
        trace=stats.trace,
    )
    return OptimizeResult(assignment=assignment, diagnostics=diagnostics)
