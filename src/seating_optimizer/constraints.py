"""Reference checks and hard constraint validation."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, List, Mapping, Sequence, Set, Tuple

import networkx as nx

from .errors import InvalidInput
from .models import (
    STRENGTH_MAX,
    STRENGTH_MIN,
    Constraint,
    ConstraintKind,
    Guest,
    Relationship,
    Table,
)
from .scoring import iter_relationships

logger = logging.getLogger(__name__)


class ConflictKind(str, Enum):
    TOGETHER_AND_APART = "together-and-apart"
    GROUP_TOO_LARGE = "group-too-large"
    FIXED_TO_MULTIPLE_TABLES = "fixed-to-multiple-tables"
    FIXED_APART_SAME_TABLE = "fixed-apart-same-table"
    FIXED_OVER_CAPACITY = "fixed-over-capacity"


@dataclass(frozen=True)
class Conflict:
    """A contradiction between hard constraints."""

    kind: ConflictKind
    constraint_ids: Tuple[str, ...]
    message: str


@dataclass(frozen=True)
class ConstraintReport:
    """Validated, deduplicated constraints plus any conflicts between the hard ones."""

    constraints: Tuple[Constraint, ...]
    conflicts: Tuple[Conflict, ...] = ()
    ignored: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.conflicts

    @property
    def hard(self) -> List[Constraint]:
        return [c for c in self.constraints if c.is_hard]

    @property
    def soft(self) -> List[Constraint]:
        return [c for c in self.constraints if not c.is_hard]


# ----------------------------- reference checks -----------------------------
def check_references(
    guests: Sequence[Guest],
    tables: Sequence[Table],
    relationships: Iterable[Relationship] = (),
    constraints: Iterable[Constraint] = (),
) -> None:
    """Raise ``InvalidInput`` for malformed records before any computation."""
    guest_ids: Set[str] = set()
    for g in guests:
        if g.id in guest_ids:
            raise InvalidInput(f"Duplicate guest id: {g.id}")
        guest_ids.add(g.id)

    table_ids: Set[str] = set()
    for t in tables:
        if t.id in table_ids:
            raise InvalidInput(f"Duplicate table id: {t.id}")
        table_ids.add(t.id)
        if not isinstance(t.capacity, int) or isinstance(t.capacity, bool) or t.capacity < 1:
            raise InvalidInput(f"Table {t.id} capacity must be an integer >= 1, got {t.capacity!r}")

    for r in iter_relationships(guests, relationships):
        if r.a not in guest_ids or r.b not in guest_ids:
            raise InvalidInput(f"Relationship references unknown guest: {r.a}, {r.b}")
        if r.a == r.b:
            raise InvalidInput(f"Relationship links guest {r.a} to itself")
        try:
            strength = int(r.strength or 0)
        except (TypeError, ValueError):
            raise InvalidInput(f"Relationship {r.a}-{r.b} strength must be an integer, got {r.strength!r}") from None
        if not STRENGTH_MIN <= strength <= STRENGTH_MAX:
            raise InvalidInput(
                f"Relationship {r.a}-{r.b} strength {r.strength} outside [{STRENGTH_MIN}, {STRENGTH_MAX}]"
            )

    for c in constraints:
        for gid in c.guest_ids:
            if gid not in guest_ids:
                raise InvalidInput(f"Constraint {c.id} references unknown guest: {gid}")
        if c.kind == ConstraintKind.FIXED_TABLE:
            if len(set(c.guest_ids)) != 1:
                raise InvalidInput(f"Constraint {c.id} must name exactly one guest")
            if c.table_id not in table_ids:
                raise InvalidInput(f"Constraint {c.id} references unknown table: {c.table_id}")
        elif len(set(c.guest_ids)) < 2:
            raise InvalidInput(f"Constraint {c.id} needs at least two distinct guests")


# ----------------------------- normalisation -----------------------------
def _dedup_key(c: Constraint):
    if c.kind == ConstraintKind.FIXED_TABLE:
        members: object = tuple(c.guest_ids)
    else:
        members = frozenset(c.guest_ids)
    return (c.kind, members, c.table_id, c.priority)


def normalize_constraints(
    guests: Sequence[Guest], constraints: Iterable[Constraint]
) -> Tuple[List[Constraint], List[str]]:
    """Restrict constraints to confirmed guests and drop duplicates.

    Returns the kept constraints in input order and the ids that were ignored.
    """
    confirmed = {g.id for g in guests if g.confirmed}
    kept: List[Constraint] = []
    ignored: List[str] = []
    seen = set()
    for c in constraints:
        ids = [gid for gid in dict.fromkeys(c.guest_ids) if gid in confirmed]
        needed = 1 if c.kind == ConstraintKind.FIXED_TABLE else 2
        if len(ids) < needed:
            logger.debug("Ignoring constraint %s: fewer than %d confirmed guests", c.id, needed)
            ignored.append(c.id)
            continue
        c = replace(c, guest_ids=ids)
        key = _dedup_key(c)
        if key in seen:
            logger.debug("Ignoring duplicate constraint %s", c.id)
            ignored.append(c.id)
            continue
        seen.add(key)
        kept.append(c)
    return kept, ignored


# ----------------------------- conflict detection -----------------------------
def together_graph(constraints: Iterable[Constraint]) -> nx.Graph:
    """Graph whose edges join guests bound by a hard must-sit-together constraint."""
    graph = nx.Graph()
    for c in constraints:
        if c.kind != ConstraintKind.MUST_SIT_TOGETHER or not c.is_hard:
            continue
        head = c.guest_ids[0]
        graph.add_node(head)
        for other in c.guest_ids[1:]:
            if not graph.has_edge(head, other):
                graph.add_edge(head, other, constraint=c.id)
    return graph


def together_groups(constraints: Iterable[Constraint], guest_ids: Iterable[str]) -> List[List[str]]:
    """Partition ``guest_ids`` into must-sit-together groups, singletons included."""
    graph = together_graph(constraints)
    graph.add_nodes_from(guest_ids)
    return sorted((sorted(comp) for comp in nx.connected_components(graph)), key=lambda g: g[0])


def _component_map(graph: nx.Graph) -> Dict[str, FrozenSet[str]]:
    out: Dict[str, FrozenSet[str]] = {}
    for comp in nx.connected_components(graph):
        members = frozenset(comp)
        for node in members:
            out[node] = members
    return out


def _edge_ids(graph: nx.Graph, nodes: Iterable[str]) -> List[str]:
    return sorted({d["constraint"] for _, _, d in graph.subgraph(nodes).edges(data=True)})


def find_conflicts(constraints: Sequence[Constraint], capacity: Mapping[str, int]) -> List[Conflict]:
    """Detect contradictions among hard constraints. Pure function."""
    hard = [c for c in constraints if c.is_hard]
    graph = together_graph(hard)
    comp_of = _component_map(graph)

    def component(gid: str) -> FrozenSet[str]:
        return comp_of.get(gid, frozenset([gid]))

    conflicts: List[Conflict] = []

    apart = [c for c in hard if c.kind == ConstraintKind.MUST_NOT_SIT_TOGETHER]
    for c in apart:
        for u, v in combinations(c.guest_ids, 2):
            if component(u) == component(v):
                path = nx.shortest_path(graph, u, v)
                ids = [graph.edges[a, b]["constraint"] for a, b in zip(path, path[1:])]
                conflicts.append(Conflict(
                    ConflictKind.TOGETHER_AND_APART,
                    tuple(sorted(set(ids))) + (c.id,),
                    f"{u} and {v} must sit together and must not sit together",
                ))
                break

    largest = max(capacity.values()) if capacity else None
    components = sorted({frozenset(m) for m in comp_of.values()}, key=lambda m: min(m))
    if largest is not None:
        for members in components:
            if len(members) > largest:
                conflicts.append(Conflict(
                    ConflictKind.GROUP_TOO_LARGE,
                    tuple(_edge_ids(graph, members)),
                    f"Group of {len(members)} ({', '.join(sorted(members))}) exceeds largest table ({largest})",
                ))

    fixed_by_comp: Dict[FrozenSet[str], Dict[str, List[str]]] = {}
    for c in hard:
        if c.kind == ConstraintKind.FIXED_TABLE:
            members = component(c.guest_ids[0])
            fixed_by_comp.setdefault(members, {}).setdefault(c.table_id, []).append(c.id)

    table_of_comp: Dict[FrozenSet[str], str] = {}
    for members, by_table in fixed_by_comp.items():
        if len(by_table) > 1:
            ids = [cid for t in sorted(by_table) for cid in by_table[t]] + _edge_ids(graph, members)
            conflicts.append(Conflict(
                ConflictKind.FIXED_TO_MULTIPLE_TABLES,
                tuple(ids),
                f"{', '.join(sorted(members))} fixed to tables {', '.join(sorted(by_table))}",
            ))
        else:
            table_of_comp[members] = next(iter(by_table))

    for c in apart:
        for u, v in combinations(c.guest_ids, 2):
            cu, cv = component(u), component(v)
            if cu == cv:
                continue
            tu, tv = table_of_comp.get(cu), table_of_comp.get(cv)
            if tu is not None and tu == tv:
                ids = fixed_by_comp[cu][tu] + fixed_by_comp[cv][tv] + [c.id]
                conflicts.append(Conflict(
                    ConflictKind.FIXED_APART_SAME_TABLE,
                    tuple(ids),
                    f"{u} and {v} must not sit together but are both fixed to {tu}",
                ))
                break

    load: Dict[str, List[FrozenSet[str]]] = {}
    for members, table_id in table_of_comp.items():
        load.setdefault(table_id, []).append(members)
    for table_id in sorted(load):
        seated = sum(len(m) for m in load[table_id])
        if seated > capacity.get(table_id, 0):
            involved: List[str] = []
            for members in sorted(load[table_id], key=lambda m: min(m)):
                involved.extend(fixed_by_comp[members][table_id])
                involved.extend(_edge_ids(graph, members))
            conflicts.append(Conflict(
                ConflictKind.FIXED_OVER_CAPACITY,
                tuple(involved),
                f"{seated} guests fixed to {table_id} with capacity {capacity.get(table_id, 0)}",
            ))
    return conflicts


def validate_constraints(
    guests: Sequence[Guest], tables: Sequence[Table], constraints: Iterable[Constraint]
) -> ConstraintReport:
    """Normalise constraints and report conflicts between the hard ones."""
    kept, ignored = normalize_constraints(guests, constraints)
    capacity = {t.id: t.capacity for t in tables}
    conflicts = find_conflicts(kept, capacity)
    if conflicts:
        logger.info("Found %d constraint conflict(s)", len(conflicts))
    return ConstraintReport(tuple(kept), tuple(conflicts), tuple(ignored))


def resolve_conflicts(
    report: ConstraintReport, tables: Sequence[Table]
) -> Tuple[ConstraintReport, List[Conflict]]:
    """Drop hard constraints that introduce a conflict, admitting them in input order.

    Returns a conflict free report and the conflicts that caused each drop.
    """
    capacity = {t.id: t.capacity for t in tables}
    admitted: List[Constraint] = []
    dropped: List[Conflict] = []
    dropped_ids: List[str] = []
    for c in report.constraints:
        if not c.is_hard:
            admitted.append(c)
            continue
        found = find_conflicts(admitted + [c], capacity)
        if found:
            logger.info("Dropping constraint %s: %s", c.id, found[0].message)
            dropped.extend(found)
            dropped_ids.append(c.id)
            continue
        admitted.append(c)
    resolved = ConstraintReport(tuple(admitted), (), report.ignored + tuple(dropped_ids))
    return resolved, dropped
