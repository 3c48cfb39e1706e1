"""
Constraint aware seating solver.

The solver works on an arena: confirmed guests and tables are addressed by
integer index in id order, and guests bound by required must-sit-together
constraints are collapsed into units that always move as one.

Search:
    1. Seed. Fixed units go to their table, then (optionally) everyone keeps
       their current seat, then groups largest first and finally single
       guests take the feasible table with the best score delta.
    2. Improve. First improvement hill climbing over unit moves and unit
       swaps in unit order x table order. Only strictly improving moves that
       keep capacity and must-not-sit-together intact are accepted.
    3. Fill. Units left without a seat are retried against the final layout.

Ties prefer the higher delta, then the table with more free seats, then the
lowest table id, so identical inputs always give identical output.
"""
from __future__ import annotations

import logging
import time
from itertools import combinations
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from .constraints import (
    check_references,
    resolve_conflicts,
    together_groups,
    validate_constraints,
)
from .errors import ConstraintConflict, InvalidInput, OptimizeError, SeatingError
from .models import (
    Constraint,
    ConstraintKind,
    Guest,
    OptimizeOptions,
    Priority,
    Relationship,
    Table,
    UnassignedReason,
)
from .results import OptimizeResult, RunStats, package_result
from .scoring import ScoreBoard, build_relationship_map, relation_value

logger = logging.getLogger(__name__)

# Pair weight (or guest/table bonus) of a soft constraint.
SOFT_WEIGHT = {
    Priority.PREFERRED: 10,
    Priority.OPTIONAL: 3,
}


# ----------------------------- model -----------------------------
class SeatingModel:
    """Seeded greedy placement plus hill climbing over an index arena."""

    def __init__(self, options: Optional[OptimizeOptions] = None) -> None:
        self.options = options or OptimizeOptions()
        # Arena
        self.guest_ids: List[str] = []
        self.table_ids: List[str] = []
        self.capacity: List[int] = []
        self.units: List[Tuple[int, ...]] = []
        self.unit_of: Dict[int, int] = {}
        # Hard constraints
        self.apart: Dict[int, Set[int]] = {}
        self.fixed: Dict[int, int] = {}
        # Objective
        self.weights: Dict[int, Dict[int, int]] = {}
        self.table_bonus: Dict[int, Dict[int, int]] = {}
        self.existing: Dict[int, int] = {}
        self.board = ScoreBoard(0, self.weights)
        # Run state
        self.unplaced: Dict[int, UnassignedReason] = {}
        self.passes = 0
        self.trace: List[int] = []
        self.stop_reason = ""
        self.seed_objective = 0

    def build(
        self,
        guests: Sequence[Guest],
        tables: Sequence[Table],
        relationships: Iterable[Relationship],
        constraints: Sequence[Constraint],
    ) -> None:
        """Index validated inputs. ``constraints`` must already be restricted to confirmed guests."""
        confirmed = [g for g in guests if g.confirmed]
        self.guest_ids = sorted(g.id for g in confirmed)
        gidx = {gid: i for i, gid in enumerate(self.guest_ids)}
        ordered = sorted(tables, key=lambda t: t.id)
        self.table_ids = [t.id for t in ordered]
        self.capacity = [t.capacity for t in ordered]
        tidx = {tid: i for i, tid in enumerate(self.table_ids)}

        self.weights = {}
        for (a, b), rel in build_relationship_map(guests, relationships).items():
            if a in gidx and b in gidx:
                self._add_weight(gidx[a], gidx[b], relation_value(rel))

        self.units = [tuple(gidx[g] for g in group) for group in together_groups(constraints, self.guest_ids)]
        self.unit_of = {g: u for u, unit in enumerate(self.units) for g in unit}

        self.apart = {}
        self.fixed = {}
        self.table_bonus = {}
        for c in constraints:
            members = [gidx[g] for g in c.guest_ids]
            if c.is_hard:
                if c.kind == ConstraintKind.MUST_NOT_SIT_TOGETHER:
                    for a, b in combinations(members, 2):
                        self.apart.setdefault(a, set()).add(b)
                        self.apart.setdefault(b, set()).add(a)
                elif c.kind == ConstraintKind.FIXED_TABLE:
                    self.fixed[self.unit_of[members[0]]] = tidx[c.table_id]
                continue
            weight = SOFT_WEIGHT[c.priority]
            if c.kind == ConstraintKind.FIXED_TABLE:
                bonus = self.table_bonus.setdefault(members[0], {})
                bonus[tidx[c.table_id]] = bonus.get(tidx[c.table_id], 0) + weight
            else:
                sign = 1 if c.kind == ConstraintKind.MUST_SIT_TOGETHER else -1
                for a, b in combinations(members, 2):
                    self._add_weight(a, b, sign * weight)

        self.existing = {}
        for g in confirmed:
            if g.table_id is None:
                continue
            if g.table_id in tidx:
                self.existing[gidx[g.id]] = tidx[g.table_id]
            else:
                logger.debug("Guest %s sits at unknown table %s; treating as unseated", g.id, g.table_id)

        self.board = ScoreBoard(len(self.table_ids), self.weights, self.table_bonus)
        self.unplaced = {}
        self.passes = 0
        self.trace = []
        self.stop_reason = ""
        logger.debug(
            "Built model: %d guests in %d units, %d tables, %d must-not pairs, %d fixed units",
            len(self.guest_ids), len(self.units), len(self.table_ids),
            sum(len(v) for v in self.apart.values()) // 2, len(self.fixed),
        )

    def _add_weight(self, a: int, b: int, value: int) -> None:
        if value == 0:
            return
        self.weights.setdefault(a, {})[b] = self.weights.get(a, {}).get(b, 0) + value
        self.weights.setdefault(b, {})[a] = self.weights[a][b]

    # ----------------------------- hard checks -----------------------------
    def _feasible(self, unit: Sequence[int], table: int, leaving: Sequence[int] = ()) -> bool:
        """Capacity and must-not checks for seating ``unit`` at ``table`` while ``leaving`` departs."""
        free = self.capacity[table] - self.board.load(table) + len(leaving)
        if len(unit) > free:
            return False
        at_table = self.board.members[table]
        for g in unit:
            for h in self.apart.get(g, ()):
                if h in at_table and h not in leaving:
                    return False
        return True

    def _reason(self, u: int) -> UnassignedReason:
        """Why a unit has no seat: blocked by constraints, or simply no room."""
        if u in self.fixed:
            return UnassignedReason.CONSTRAINT_DEADLOCK
        size = len(self.units[u])
        for t in range(len(self.table_ids)):
            if self.capacity[t] - self.board.load(t) >= size:
                return UnassignedReason.CONSTRAINT_DEADLOCK
        return UnassignedReason.NO_CAPACITY

    def _pick_table(self, unit: Sequence[int], scored: bool = True) -> Optional[int]:
        """Best feasible table for an unseated unit, or the first feasible one when not scoring."""
        best = None
        best_key = None
        for t in range(len(self.table_ids)):
            if not self._feasible(unit, t):
                continue
            if not scored:
                return t
            key = (self.board.place_delta(unit, t), self.capacity[t] - self.board.load(t), -t)
            if best_key is None or key > best_key:
                best, best_key = t, key
        return best

    # ----------------------------- phases -----------------------------
    def _seed(self) -> None:
        scored = not self.options.respect_fixed_only
        placed: Set[int] = set()

        for u in sorted(self.fixed):
            unit, table = self.units[u], self.fixed[u]
            if self._feasible(unit, table):
                self.board.place(unit, table)
                placed.add(u)
            else:
                self.unplaced[u] = UnassignedReason.CONSTRAINT_DEADLOCK

        if self.options.preserve_existing:
            for u, unit in enumerate(self.units):
                if u in placed or u in self.fixed:
                    continue
                current = [self.existing[g] for g in unit if g in self.existing]
                if current and self._feasible(unit, current[0]):
                    self.board.place(unit, current[0])
                    placed.add(u)

        rest = [u for u in range(len(self.units)) if u not in placed and u not in self.fixed]
        rest.sort(key=lambda u: (-len(self.units[u]), u))
        for u in rest:
            table = self._pick_table(self.units[u], scored)
            if table is None:
                self.unplaced[u] = self._reason(u)
            else:
                self.board.place(self.units[u], table)

    def _improvement_pass(self, movable: Sequence[int]) -> bool:
        board = self.board
        improved = False

        for u in movable:
            unit = self.units[u]
            src = board.table_for(unit[0])
            for t in range(len(self.table_ids)):
                if t == src or not self._feasible(unit, t):
                    continue
                gain = board.move_delta(unit, t)
                if gain > 0:
                    board.move(unit, t)
                    self.trace.append(gain)
                    improved = True
                    break

        for i, u in enumerate(movable):
            first = self.units[u]
            for v in movable[i + 1:]:
                second = self.units[v]
                src, dst = board.table_for(first[0]), board.table_for(second[0])
                if src == dst:
                    continue
                if not self._feasible(first, dst, second) or not self._feasible(second, src, first):
                    continue
                gain = board.swap_delta(first, second)
                if gain > 0:
                    board.swap(first, second)
                    self.trace.append(gain)
                    improved = True
                    break
        return improved

    def _improve(self, started: float) -> None:
        opts = self.options
        deadline = None if opts.time_budget_ms is None else started + opts.time_budget_ms / 1000.0
        movable = [u for u in range(len(self.units)) if u not in self.fixed and u not in self.unplaced]
        while True:
            if self.passes >= opts.max_passes:
                self.stop_reason = "max-passes"
                return
            if deadline is not None and time.monotonic() >= deadline:
                self.stop_reason = "time-budget"
                return
            self.passes += 1
            if not self._improvement_pass(movable):
                self.stop_reason = "converged"
                return

    def _fill(self) -> int:
        """Retry unseated units against the current layout. Returns how many were seated."""
        seated = 0
        scored = not self.options.respect_fixed_only
        for u in sorted(self.unplaced):
            unit = self.units[u]
            if u in self.fixed:
                table = self.fixed[u] if self._feasible(unit, self.fixed[u]) else None
            else:
                table = self._pick_table(unit, scored)
            if table is None:
                self.unplaced[u] = self._reason(u)
                continue
            self.board.place(unit, table)
            del self.unplaced[u]
            seated += 1
        return seated

    # ----------------------------- solve -----------------------------
    def solve(self) -> Dict[str, Optional[str]]:
        """Return guest id -> table id (``None`` when unseated) for every confirmed guest."""
        started = time.monotonic()
        self._seed()
        self.seed_objective = self.board.total
        if self.options.respect_fixed_only:
            self.stop_reason = "lock-mode"
            self._fill()
        else:
            self._improve(started)
            # Newly seated units may open improving moves.
            while self._fill() and self.stop_reason == "converged":
                self._improve(started)
        logger.info(
            "Seating solved: objective %d (seed %d) after %d pass(es), %d move(s), %s; %d unit(s) unseated",
            self.board.total, self.seed_objective, self.passes, len(self.trace),
            self.stop_reason, len(self.unplaced),
        )
        return self.table_map()

    def table_map(self) -> Dict[str, Optional[str]]:
        out: Dict[str, Optional[str]] = {}
        for i, gid in enumerate(self.guest_ids):
            t = self.board.table_for(i)
            out[gid] = self.table_ids[t] if t is not None else None
        return out

    def unassigned_reasons(self) -> Dict[str, UnassignedReason]:
        return {
            self.guest_ids[g]: reason
            for u, reason in self.unplaced.items()
            for g in self.units[u]
        }

    def groups(self) -> List[List[str]]:
        return [[self.guest_ids[g] for g in unit] for unit in self.units]

    def stats(self) -> RunStats:
        return RunStats(
            passes=self.passes,
            stop_reason=self.stop_reason,
            seed_objective=self.seed_objective,
            objective=self.board.total,
            trace=tuple(self.trace),
        )


# ----------------------------- entry point -----------------------------
def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_options(options: OptimizeOptions) -> None:
    if not _is_int(options.max_passes) or options.max_passes < 0:
        raise InvalidInput(f"max_passes must be an integer >= 0, got {options.max_passes!r}")
    budget = options.time_budget_ms
    if budget is not None and (not _is_int(budget) or budget < 0):
        raise InvalidInput(f"time_budget_ms must be an integer >= 0 or None, got {budget!r}")


def optimize(
    guests: Iterable[Guest],
    tables: Iterable[Table],
    relationships: Iterable[Relationship] = (),
    constraints: Iterable[Constraint] = (),
    options: Union[OptimizeOptions, Mapping[str, object], None] = None,
) -> OptimizeResult:
    """Assign confirmed guests to tables.

    Never raises for bad input: malformed records and contradictory hard
    constraints come back as ``OptimizeResult.error``. Running out of seats
    is not an error; affected guests are returned unassigned with a reason.
    Inputs are not modified.
    """
    if options is None:
        options = OptimizeOptions()
    elif not isinstance(options, OptimizeOptions):
        options = OptimizeOptions.from_mapping(options)
    guests = list(guests)
    tables = list(tables)
    relationships = list(relationships)
    constraints = list(constraints)

    try:
        _check_options(options)
        check_references(guests, tables, relationships, constraints)
        report = validate_constraints(guests, tables, constraints)
        dropped = []
        if not report.ok:
            if not options.auto_drop_conflicts:
                raise ConstraintConflict(report.conflicts)
            report, dropped = resolve_conflicts(report, tables)
    except SeatingError as exc:
        logger.info("Optimization rejected: %s", exc)
        return OptimizeResult(error=OptimizeError.from_exception(exc))

    model = SeatingModel(options)
    model.build(guests, tables, relationships, report.constraints)
    table_of = model.solve()
    return package_result(
        guests,
        tables,
        relationships,
        report,
        dropped,
        table_of,
        model.unassigned_reasons(),
        model.groups(),
        model.stats(),
        preserve_existing=options.preserve_existing,
    )
