"""Tests for research cost vs commission reconciliation."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from commission_recon.domain.finance.recon import (
    AllocationRecord,
    DataQualityError,
    JoinMode,
    ReconciliationRow,
    SourceRow,
    aggregate,
    reconcile,
    totals,
    validate_group_by,
)

D = Decimal


def test_example_scenario():
    """Cost-only key keeps its cost with zero commission."""
    costs = [(("A",), D("500")), (("B",), D("200"))]
    commissions = [(("A",), D("300"))]

    rows = reconcile(costs, commissions, ["broker"])

    assert rows == [
        ReconciliationRow(("A",), D("500"), D("300"), D("-200")),
        ReconciliationRow(("B",), D("200"), D("0"), D("-200")),
    ]


def test_output_keys_are_union_without_duplicates():
    """Overlapping key sets produce each key exactly once."""
    costs = [(("A",), 1), (("B",), 2), (("B",), 3)]
    commissions = [(("B",), 5), (("C",), 7), (("C",), 1)]

    rows = reconcile(costs, commissions, ["team"])
    keys = [r.key for r in rows]

    assert keys == [("A",), ("B",), ("C",)]
    assert len(keys) == len(set(keys))


def test_commission_only_key_has_zero_cost():
    rows = reconcile([], [(("X",), D("12.5"))], ["account"])

    assert rows == [ReconciliationRow(("X",), D("0"), D("12.5"), D("12.5"))]


def test_delta_is_commission_minus_cost_for_every_row():
    costs = [(("A", "t1"), D("10.01")), (("B", "t2"), D("3.333")), (("C", "t1"), D("0"))]
    commissions = [(("A", "t1"), D("7.5")), (("C", "t1"), D("1.10")), (("D", "t9"), D("2"))]

    for row in reconcile(costs, commissions, ["broker", "team"]):
        assert row.delta == row.commission - row.research_cost


def test_rows_sorted_by_key_tuple():
    costs = [(("b", "2"), 1), (("a", "9"), 1), (("b", "1"), 1)]

    rows = reconcile(costs, [(("a", "1"), 1)], ["broker", "team"])

    assert [r.key for r in rows] == [("a", "1"), ("a", "9"), ("b", "1"), ("b", "2")]


def test_source_rows_grouped_by_dimensions():
    """Raw rows are summed by the requested dimensions; missing values group as Unassigned."""
    costs = [
        SourceRow(d=date(2024, 1, 2), amount=D("10"), broker="Alpha", team="Eq"),
        SourceRow(d=date(2024, 1, 3), amount=D("5"), broker="Alpha", team="Eq"),
        SourceRow(d=date(2024, 1, 3), amount=D("1"), broker="Alpha", team=None),
    ]
    commissions = [SourceRow(d=date(2024, 1, 4), amount=D("20"), broker="Alpha", team="Eq")]

    rows = reconcile(costs, commissions, ["broker", "team"])

    assert rows == [
        ReconciliationRow(("Alpha", "Eq"), D("15"), D("20"), D("5")),
        ReconciliationRow(("Alpha", "Unassigned"), D("1"), D("0"), D("-1")),
    ]


def test_allocation_records_accepted():
    rows = reconcile([AllocationRecord(("A",), D("1.5"))], [AllocationRecord(("A",), D("2"))], ["broker"])

    assert rows[0].delta == D("0.5")


def test_float_amounts_do_not_leak_binary_noise():
    rows = reconcile([(("A",), 0.1), (("A",), 0.2)], [], ["broker"])

    assert rows[0].research_cost == D("0.3")


@pytest.mark.parametrize(
    ("join", "expected"),
    [
        (JoinMode.FULL, [("A",), ("B",), ("C",)]),
        (JoinMode.LEFT, [("A",), ("B",)]),
        (JoinMode.RIGHT, [("B",), ("C",)]),
        (JoinMode.INNER, [("B",)]),
        ("right", [("B",), ("C",)]),
    ],
)
def test_join_modes_select_keys(join, expected):
    costs = [(("A",), 1), (("B",), 2)]
    commissions = [(("B",), 3), (("C",), 4)]

    rows = reconcile(costs, commissions, ["broker"], join=join)

    assert [r.key for r in rows] == expected


def test_unknown_join_mode_rejected():
    with pytest.raises(ValueError):
        reconcile([], [], ["broker"], join="outer")


def test_precision_quantizes_sums_before_delta():
    costs = [(("A",), D("1.005")), (("A",), D("0.001"))]
    commissions = [(("A",), D("2.0049"))]

    row = reconcile(costs, commissions, ["broker"], precision=2)[0]

    assert row.research_cost == D("1.01")
    assert row.commission == D("2.00")
    assert row.delta == D("0.99")
    assert row.delta == row.commission - row.research_cost


def test_no_rounding_without_precision():
    row = reconcile([(("A",), D("0.123456789"))], [], ["broker"])[0]

    assert row.research_cost == D("0.123456789")


def test_negative_sum_kept_and_logged(caplog):
    """Negative sums are reported, never clamped."""
    with caplog.at_level("WARNING"):
        rows = reconcile([(("A",), D("-5"))], [(("A",), D("1"))], ["broker"])

    assert rows[0].research_cost == D("-5")
    assert rows[0].delta == D("6")
    assert "Negative research_cost" in caplog.text


def test_negative_sum_strict_raises():
    with pytest.raises(DataQualityError, match="Negative commission"):
        reconcile([], [(("A",), D("-1"))], ["broker"], strict=True)


def test_aggregate_sums_per_key():
    sums = aggregate([(("A",), 1), (("A",), 2), (("B",), 3)], ["broker"])

    assert sums == {("A",): D("3"), ("B",): D("3")}


def test_key_length_must_match_group_by():
    with pytest.raises(ValueError, match="does not match"):
        aggregate([(("A", "B"), 1)], ["broker"])


@pytest.mark.parametrize(
    "group_by",
    [[], ["broker", "team", "individual", "account"], ["team", "team"], ["desk"]],
)
def test_invalid_group_by(group_by):
    with pytest.raises(ValueError):
        validate_group_by(group_by)


def test_totals_and_as_dict():
    rows = reconcile([(("A", "x"), 5), (("B", "y"), 2)], [(("A", "x"), 9)], ["broker", "team"])

    assert totals(rows) == {"research_cost": D("7"), "commission": D("9"), "delta": D("2")}
    assert rows[0].as_dict(["broker", "team"]) == {
        "broker": "A",
        "team": "x",
        "research_cost": D("5"),
        "commission": D("9"),
        "delta": D("4"),
    }
