import pytest

from seating_optimizer import (
    Assignment,
    Constraint,
    ConstraintKind,
    Guest,
    OptimizeOptions,
    Placement,
    Priority,
    RsvpStatus,
    UnassignedReason,
)
from seating_optimizer.models import TableShape, parse_pipe_list


def test_guest_instantiation():
    guest = Guest(id="g1", name="Alex")
    assert guest.name == "Alex"
    assert guest.confirmed
    assert guest.table_id is None
    assert guest.relationships == []


def test_guest_rsvp_enum_and_text():
    assert not Guest(id="g1", rsvp=RsvpStatus.DECLINED).confirmed
    assert Guest(id="g2", rsvp=RsvpStatus.CONFIRMED).confirmed
    assert Guest(id="g3", rsvp="Confirmed").confirmed
    assert not Guest(id="g4", rsvp="pending").confirmed


def test_parse_pipe_list():
    assert parse_pipe_list("a| b |") == ["a", "b"]
    assert parse_pipe_list(float("nan")) == []
    assert parse_pipe_list(None) == []


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("must_sit_together", ConstraintKind.MUST_SIT_TOGETHER),
        ("same_table", ConstraintKind.MUST_SIT_TOGETHER),
        ("mustNotSitTogether", ConstraintKind.MUST_NOT_SIT_TOGETHER),
        ("different_table", ConstraintKind.MUST_NOT_SIT_TOGETHER),
        ("fixedTable", ConstraintKind.FIXED_TABLE),
        ("FIXED_TABLE", ConstraintKind.FIXED_TABLE),
    ],
)
def test_constraint_kind_aliases(raw, expected):
    assert ConstraintKind.parse(raw) == expected


def test_constraint_kind_rejects_unknown():
    with pytest.raises(ValueError):
        ConstraintKind.parse("near_front")


def test_constraint_constructors():
    c = Constraint.must_sit_together("a", "b")
    assert c.kind == ConstraintKind.MUST_SIT_TOGETHER
    assert c.guest_ids == ["a", "b"]
    assert c.is_hard

    f = Constraint.fixed_table("a", "t1", priority=Priority.PREFERRED)
    assert f.table_id == "t1"
    assert not f.is_hard

    raw = Constraint(id="x", kind="same_table", guest_ids=["a", "b"], priority="Optional")
    assert raw.kind == ConstraintKind.MUST_SIT_TOGETHER
    assert raw.priority == Priority.OPTIONAL


def test_table_shape_parse_falls_back_to_other():
    assert TableShape.parse("half-round") == TableShape.HALF_ROUND
    assert TableShape.parse("hexagon") == TableShape.OTHER


def test_options_from_mapping_accepts_camel_case():
    opts = OptimizeOptions.from_mapping(
        {"maxPasses": 3, "timeBudgetMs": None, "preserveExisting": False, "unknown": 1}
    )
    assert opts.max_passes == 3
    assert opts.time_budget_ms is None
    assert opts.preserve_existing is False
    assert opts.respect_fixed_only is False


def test_assignment_lookups():
    assignment = Assignment((
        Placement("g1", "t10", 0),
        Placement("g2", "t10", 1),
        Placement("g3", "t11", 0),
        Placement("g4", reason=UnassignedReason.NO_CAPACITY),
    ))
    assert assignment.get_table_for_guest("g1") == "t10"
    assert assignment.get_table_for_guest("g4") is None
    assert assignment.get_table_for_guest("missing") is None
    assert assignment.get_guests_at_table("t10") == ["g1", "g2"]
    assert assignment.unassigned == ["g4"]
    assert assignment.as_dict() == {"g1": "t10", "g2": "t10", "g3": "t11", "g4": None}
