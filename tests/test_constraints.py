import pytest

from seating_optimizer.constraints import (
    ConflictKind,
    check_references,
    find_conflicts,
    normalize_constraints,
    resolve_conflicts,
    together_groups,
    validate_constraints,
)
from seating_optimizer.errors import InvalidInput
from seating_optimizer.models import Constraint, Guest, Priority, Relationship, Table


def _guests(*ids, rsvp="confirmed"):
    return [Guest(id=i, rsvp=rsvp) for i in ids]


class TestCheckReferences:
    """Test malformed input detection."""

    def test_accepts_valid_input(self):
        check_references(
            _guests("a", "b"),
            [Table("t1", 2)],
            [Relationship("a", "b", "friend", 3)],
            [Constraint.fixed_table("a", "t1")],
        )

    @pytest.mark.parametrize(
        "guests, tables, relationships, constraints",
        [
            (_guests("a", "a"), [], [], []),
            (_guests("a"), [Table("t1", 2), Table("t1", 3)], [], []),
            (_guests("a"), [Table("t1", 0)], [], []),
            (_guests("a"), [Table("t1", "4")], [], []),
            (_guests("a"), [], [Relationship("a", "z")], []),
            (_guests("a"), [], [Relationship("a", "a")], []),
            (_guests("a", "b"), [], [Relationship("a", "b", "friend", 9)], []),
            (_guests("a", "b"), [], [], [Constraint.must_sit_together("a", "z")]),
            (_guests("a", "b"), [Table("t1", 2)], [], [Constraint.fixed_table("a", "t9")]),
            (_guests("a", "b"), [], [], [Constraint.must_not_sit_together("a", "a")]),
        ],
    )
    def test_rejects(self, guests, tables, relationships, constraints):
        with pytest.raises(InvalidInput):
            check_references(guests, tables, relationships, constraints)


def test_normalize_drops_unconfirmed_and_duplicates():
    guests = _guests("a", "b", "c") + _guests("d", rsvp="declined")
    constraints = [
        Constraint.must_sit_together("a", "b", id="c1"),
        Constraint.must_sit_together("b", "a", id="c2"),
        Constraint.must_not_sit_together("a", "d", id="c3"),
        Constraint.must_not_sit_together("a", "b", "d", id="c4"),
    ]
    kept, ignored = normalize_constraints(guests, constraints)
    assert [c.id for c in kept] == ["c1", "c4"]
    assert kept[1].guest_ids == ["a", "b"]
    assert ignored == ["c2", "c3"]


def test_together_groups_include_singletons():
    constraints = [
        Constraint.must_sit_together("b", "c"),
        Constraint.must_sit_together("c", "d"),
        Constraint.must_sit_together("e", "f", priority=Priority.PREFERRED),
    ]
    groups = together_groups(constraints, ["a", "b", "c", "d", "e", "f"])
    assert groups == [["a"], ["b", "c", "d"], ["e"], ["f"]]


class TestFindConflicts:
    """Each kind of contradiction between required constraints."""

    def test_together_and_apart(self):
        conflicts = find_conflicts([
            Constraint.must_sit_together("a", "b", id="x"),
            Constraint.must_sit_together("b", "c", id="y"),
            Constraint.must_not_sit_together("a", "c", id="z"),
        ], {"t1": 4})
        assert len(conflicts) == 1
        assert conflicts[0].kind == ConflictKind.TOGETHER_AND_APART
        assert conflicts[0].constraint_ids == ("x", "y", "z")

    def test_group_too_large(self):
        conflicts = find_conflicts(
            [Constraint.must_sit_together("a", "b", "c", id="x")], {"t1": 2, "t2": 2}
        )
        assert [c.kind for c in conflicts] == [ConflictKind.GROUP_TOO_LARGE]
        assert conflicts[0].constraint_ids == ("x",)

    def test_fixed_to_multiple_tables(self):
        conflicts = find_conflicts([
            Constraint.must_sit_together("a", "b", id="x"),
            Constraint.fixed_table("a", "t1", id="f1"),
            Constraint.fixed_table("b", "t2", id="f2"),
        ], {"t1": 4, "t2": 4})
        assert [c.kind for c in conflicts] == [ConflictKind.FIXED_TO_MULTIPLE_TABLES]
        assert conflicts[0].constraint_ids == ("f1", "f2", "x")

    def test_fixed_apart_same_table(self):
        conflicts = find_conflicts([
            Constraint.fixed_table("a", "t1", id="f1"),
            Constraint.fixed_table("b", "t1", id="f2"),
            Constraint.must_not_sit_together("a", "b", id="z"),
        ], {"t1": 4})
        assert [c.kind for c in conflicts] == [ConflictKind.FIXED_APART_SAME_TABLE]
        assert conflicts[0].constraint_ids == ("f1", "f2", "z")

    def test_fixed_over_capacity(self):
        conflicts = find_conflicts([
            Constraint.fixed_table("a", "t1", id="f1"),
            Constraint.fixed_table("b", "t1", id="f2"),
            Constraint.fixed_table("c", "t1", id="f3"),
        ], {"t1": 2, "t2": 5})
        assert [c.kind for c in conflicts] == [ConflictKind.FIXED_OVER_CAPACITY]
        assert conflicts[0].constraint_ids == ("f1", "f2", "f3")

    def test_soft_constraints_never_conflict(self):
        conflicts = find_conflicts([
            Constraint.must_sit_together("a", "b"),
            Constraint.must_not_sit_together("a", "b", priority=Priority.PREFERRED),
            Constraint.fixed_table("a", "t1", priority=Priority.OPTIONAL),
            Constraint.fixed_table("b", "t2"),
        ], {"t1": 4, "t2": 4})
        assert conflicts == []

    def test_no_tables_skips_group_size(self):
        assert find_conflicts([Constraint.must_sit_together("a", "b")], {}) == []


def test_validate_constraints_splits_hard_and_soft():
    guests = _guests("a", "b") + _guests("c", rsvp="pending")
    report = validate_constraints(guests, [Table("t1", 2)], [
        Constraint.must_sit_together("a", "b"),
        Constraint.must_not_sit_together("a", "b", priority=Priority.OPTIONAL),
        Constraint.must_sit_together("a", "c", id="pending"),
    ])
    assert report.ok
    assert len(report.hard) == 1
    assert len(report.soft) == 1
    assert report.ignored == ("pending",)


def test_resolve_conflicts_keeps_earlier_constraints():
    guests = _guests("a", "b", "c")
    tables = [Table("t1", 2), Table("t2", 2)]
    report = validate_constraints(guests, tables, [
        Constraint.must_sit_together("a", "b", id="keep"),
        Constraint.must_not_sit_together("a", "b", id="drop"),
        Constraint.must_sit_together("b", "c", id="too-big"),
        Constraint.must_sit_together("a", "c", id="soft", priority=Priority.OPTIONAL),
    ])
    assert not report.ok

    resolved, dropped = resolve_conflicts(report, tables)
    assert resolved.ok
    assert [c.id for c in resolved.constraints] == ["keep", "soft"]
    assert resolved.ignored == ("drop", "too-big")
    assert [c.kind for c in dropped] == [ConflictKind.TOGETHER_AND_APART, ConflictKind.GROUP_TOO_LARGE]
