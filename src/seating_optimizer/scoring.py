"""
Relationship aware seating score.

Default relationship values, used when a relationship carries strength 0:
    partner: +5
    family: +4
    friend: +3
    colleague: +2
    acquaintance: +1
    avoid: -5
An ``avoid`` relationship always counts as negative, whatever the sign of its
stored strength. The score of an assignment is the sum of relationship values
over every pair of guests seated at the same table. Table compatibility is
graded A to F based on the average value among all pairs at the table.
"""
from __future__ import annotations

from itertools import combinations
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .models import Guest, Relationship, RelationshipType, enum_value


# ----------------------------- scoring helpers -----------------------------
_RELATION_VALUE = {
    "partner": 5,
    "family": 4,
    "friend": 3,
    "colleague": 2,
    "acquaintance": 1,
    "avoid": -5,
}


def relation_value(rel: Relationship) -> int:
    """Signed strength of a relationship."""
    relation = enum_value(rel.relation).strip().lower()
    strength = int(rel.strength or 0)
    if strength == 0:
        return _RELATION_VALUE.get(relation, 0)
    if relation == RelationshipType.AVOID.value:
        return -abs(strength)
    return strength


def iter_relationships(guests: Iterable[Guest], relationships: Iterable[Relationship] = ()) -> Iterable[Relationship]:
    """Guest-embedded relationships first, then the explicit list."""
    for g in guests:
        for r in g.relationships:
            yield r if r.a == g.id else Relationship(a=g.id, b=r.b, relation=r.relation,
                                                     strength=r.strength, notes=r.notes)
    yield from relationships


def build_relationship_map(
    guests: Iterable[Guest], relationships: Iterable[Relationship] = ()
) -> Dict[Tuple[str, str], Relationship]:
    """Index relationships by unordered pair. The later entry for a pair wins."""
    out: Dict[Tuple[str, str], Relationship] = {}
    for r in iter_relationships(guests, relationships):
        out[r.pair] = r
    return out


def pair_value_lookup(rel_map: Mapping[Tuple[str, str], Relationship]) -> Callable[[str, str], int]:
    """Return ``value(a, b)``; unrelated pairs are worth 0."""
    values = {pair: relation_value(r) for pair, r in rel_map.items()}

    def value(a: str, b: str) -> int:
        return values.get((a, b) if a <= b else (b, a), 0)

    return value


def score_assignment(
    table_of: Mapping[str, Optional[str]], value: Callable[[str, str], int]
) -> int:
    """Full rescan score of a guest -> table mapping. Unseated guests contribute 0."""
    by_table: Dict[str, List[str]] = {}
    for guest_id, table_id in table_of.items():
        if table_id is not None:
            by_table.setdefault(table_id, []).append(guest_id)
    total = 0
    for members in by_table.values():
        for a, b in combinations(members, 2):
            total += value(a, b)
    return total


def compute_table_stats(members: List[str], value: Callable[[str, str], int]) -> Dict[str, int | float]:
    """Compute total and mean pair scores plus sign breakdown for a set of members."""
    total = 0
    pos = neg = neu = 0
    pairs = 0
    for a, b in combinations(members, 2):
        v = value(a, b)
        total += v
        pairs += 1
        if v > 0:
            pos += 1
        elif v < 0:
            neg += 1
        else:
            neu += 1
    mean = total / pairs if pairs else 0.0
    return {
        "total_score": total,
        "mean_score": mean,
        "pair_count": pairs,
        "pos_pairs": pos,
        "neg_pairs": neg,
        "neu_pairs": neu,
    }


def grade_tables(stats: List[Dict[str, int | float]]) -> List[Dict[str, int | float | str]]:
    """Assign A to F based on mean score thresholds."""
    graded = []
    for s in stats:
        m = s["mean_score"]
        if m >= 2.5:
            g = "A"
        elif m >= 1.5:
            g = "B"
        elif m >= 0.8:
            g = "C"
        elif m >= 0.2:
            g = "D"
        else:
            g = "F"
        out = dict(s)
        out["grade"] = g
        graded.append(out)
    return graded


# ----------------------------- incremental board -----------------------------
class ScoreBoard:
    """Table membership plus a running objective over integer guest indices.

    ``weights[g][h]`` is the symmetric pair weight and ``table_bonus[g][t]`` an
    optional per guest table bonus. Deltas only touch the members of the
    tables involved, so a move costs O(unit size * (|src| + |dst|)).
    """

    def __init__(
        self,
        table_count: int,
        weights: Mapping[int, Mapping[int, int]],
        table_bonus: Optional[Mapping[int, Mapping[int, int]]] = None,
    ) -> None:
        self.weights = weights
        self.table_bonus = table_bonus or {}
        self.members: List[Set[int]] = [set() for _ in range(table_count)]
        self.table_of: Dict[int, int] = {}
        self.total = 0

    def load(self, table: int) -> int:
        return len(self.members[table])

    def table_for(self, guest: int) -> Optional[int]:
        return self.table_of.get(guest)

    def _affinity(self, unit: Sequence[int], table: int, exclude: FrozenSet[int] = frozenset()) -> int:
        total = 0
        at_table = self.members[table]
        for g in unit:
            row = self.weights.get(g)
            if row:
                for h in at_table:
                    if h not in exclude:
                        total += row.get(h, 0)
            bonus = self.table_bonus.get(g)
            if bonus:
                total += bonus.get(table, 0)
        return total

    def _internal(self, unit: Sequence[int]) -> int:
        total = 0
        for a, b in combinations(unit, 2):
            total += self.weights.get(a, {}).get(b, 0)
        return total

    # deltas
    def place_delta(self, unit: Sequence[int], table: int) -> int:
        """Gain from seating an unseated unit at ``table``."""
        return self._affinity(unit, table) + self._internal(unit)

    def move_delta(self, unit: Sequence[int], table: int) -> int:
        src = self.table_of[unit[0]]
        if src == table:
            return 0
        own = frozenset(unit)
        return self._affinity(unit, table) - self._affinity(unit, src, own)

    def swap_delta(self, first: Sequence[int], second: Sequence[int]) -> int:
        src = self.table_of[first[0]]
        dst = self.table_of[second[0]]
        if src == dst:
            return 0
        a, b = frozenset(first), frozenset(second)
        return (
            self._affinity(first, dst, b) - self._affinity(first, src, a)
            + self._affinity(second, src, a) - self._affinity(second, dst, b)
        )

    # mutations
    def place(self, unit: Sequence[int], table: int) -> None:
        self.total += self.place_delta(unit, table)
        for g in unit:
            self.members[table].add(g)
            self.table_of[g] = table

    def remove(self, unit: Sequence[int]) -> None:
        src = self.table_of[unit[0]]
        self.total -= self._affinity(unit, src, frozenset(unit)) + self._internal(unit)
        for g in unit:
            self.members[src].discard(g)
            del self.table_of[g]

    def move(self, unit: Sequence[int], table: int) -> None:
        src = self.table_of[unit[0]]
        if src == table:
            return
        self.total += self.move_delta(unit, table)
        for g in unit:
            self.members[src].discard(g)
            self.members[table].add(g)
            self.table_of[g] = table

    def swap(self, first: Sequence[int], second: Sequence[int]) -> None:
        src = self.table_of[first[0]]
        dst = self.table_of[second[0]]
        if src == dst:
            return
        self.total += self.swap_delta(first, second)
        for g in first:
            self.members[src].discard(g)
            self.members[dst].add(g)
            self.table_of[g] = dst
        for g in second:
            self.members[dst].discard(g)
            self.members[src].add(g)
            self.table_of[g] = src

    def recompute(self) -> int:
        """Full rescan of the objective."""
        total = 0
        for t, at_table in enumerate(self.members):
            ordered = sorted(at_table)
            total += self._internal(ordered)
            for g in ordered:
                total += self.table_bonus.get(g, {}).get(t, 0)
        return total
