"""Commission vs research cost reconciliation.

Business logic for:
- Grouping transaction-level rows by a report's key dimensions
- Joining cost and commission sums per key
- Delta = Commission - Research Cost

NO DATA ACCESS - pure functions only. Data access happens in services layer.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Union

from commission_recon.core.metrics import recon_negative_sums_total

logger = logging.getLogger(__name__)

DIMENSIONS = ("broker", "team", "individual", "account")
MAX_KEY_DIMENSIONS = 3
UNASSIGNED = "Unassigned"

Key = tuple[str, ...]

ZERO = Decimal("0")


class DataQualityError(ValueError):
    """Aggregated amounts violate a data-quality rule (e.g. negative sum)."""


class JoinMode(str, Enum):
    """Which keys survive the join of the two sides."""

    FULL = "full"  # keys on either side
    LEFT = "left"  # keys with research cost
    RIGHT = "right"  # keys with commission
    INNER = "inner"  # keys on both sides


@dataclass(frozen=True)
class AllocationRecord:
    """Pre-aggregated amount for one key."""

    key: Key
    amount: Decimal


@dataclass(frozen=True)
class SourceRow:
    """Transaction-level row as loaded from the warehouse.

    ``broker`` holds the resolved parent broker; unmapped rows carry the
    unresolved sentinel (see ``policy.BrokerPolicy``).
    """

    d: date
    amount: Decimal
    broker: str | None = None
    team: str | None = None
    individual: str | None = None
    account: str | None = None

    def key(self, group_by: Sequence[str]) -> Key:
        return tuple(getattr(self, dim) or UNASSIGNED for dim in group_by)


@dataclass(frozen=True)
class ReconciliationRow:
    key: Key
    research_cost: Decimal = ZERO
    commission: Decimal = ZERO
    delta: Decimal = ZERO

    def as_dict(self, group_by: Sequence[str]) -> dict[str, Any]:
        """Flatten into report columns: dimensions, then amounts."""
        out: dict[str, Any] = dict(zip(group_by, self.key))
        out["research_cost"] = self.research_cost
        out["commission"] = self.commission
        out["delta"] = self.delta
        return out


Allocation = Union[AllocationRecord, SourceRow, tuple[Key, Any]]


def validate_group_by(group_by: Sequence[str]) -> tuple[str, ...]:
    """Check grouping dimensions and return them as a tuple.

    Raises:
        ValueError: If empty, too long, duplicated, or unknown dimensions

    """
    dims = tuple(group_by)
    if not dims:
        raise ValueError("group_by must name at least one dimension")
    if len(dims) > MAX_KEY_DIMENSIONS:
        raise ValueError(f"group_by supports at most {MAX_KEY_DIMENSIONS} dimensions")
    if len(set(dims)) != len(dims):
        raise ValueError(f"group_by has duplicate dimensions: {dims}")
    unknown = [d for d in dims if d not in DIMENSIONS]
    if unknown:
        raise ValueError(f"Unknown dimensions {unknown}; expected some of {DIMENSIONS}")
    return dims


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() keeps the shortest repr instead of the binary expansion
        return Decimal(str(value))
    return Decimal(value)


def _key_and_amount(item: Allocation, group_by: tuple[str, ...]) -> tuple[Key, Decimal]:
    if isinstance(item, SourceRow):
        return item.key(group_by), _to_decimal(item.amount)
    if isinstance(item, AllocationRecord):
        key, amount = item.key, item.amount
    else:
        key, amount = item
    key = tuple(key)
    if len(key) != len(group_by):
        raise ValueError(f"Key {key} does not match group_by {group_by}")
    return key, _to_decimal(amount)


def aggregate(rows: Iterable[Allocation], group_by: Sequence[str]) -> dict[Key, Decimal]:
    """Sum amounts per key.

    Accepts raw ``SourceRow``s (grouped by ``group_by``), ``AllocationRecord``s
    or plain ``(key, amount)`` pairs.
    """
    dims = validate_group_by(group_by)
    sums: dict[Key, Decimal] = {}
    for item in rows:
        key, amount = _key_and_amount(item, dims)
        sums[key] = sums.get(key, ZERO) + amount
    return sums


def _check_negative(sums: dict[Key, Decimal], side: str, strict: bool) -> None:
    negatives = {k: v for k, v in sums.items() if v < 0}
    if not negatives:
        return

    recon_negative_sums_total.labels(side=side).inc(len(negatives))
    logger.warning(
        f"Negative {side} sums for {len(negatives)} key(s)",
        extra={"side": side, "keys": [list(k) for k in sorted(negatives)][:20]},
    )
    if strict:
        raise DataQualityError(
            f"Negative {side} for keys: {sorted(negatives)[:5]}"
            + (" ..." if len(negatives) > 5 else "")
        )


def _select_keys(cost_keys: set[Key], commission_keys: set[Key], join: JoinMode) -> set[Key]:
    if join is JoinMode.FULL:
        return cost_keys | commission_keys
    if join is JoinMode.LEFT:
        return set(cost_keys)
    if join is JoinMode.RIGHT:
        return set(commission_keys)
    return cost_keys & commission_keys


def _quantize(value: Decimal, precision: int | None) -> Decimal:
    if precision is None:
        return value
    return value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)


def reconcile(
    costs: Iterable[Allocation],
    commissions: Iterable[Allocation],
    group_by: Sequence[str],
    join: JoinMode | str = JoinMode.FULL,
    precision: int | None = None,
    strict: bool = False,
) -> list[ReconciliationRow]:
    """Join research cost and commission sums per key.

    Args:
        costs: Research cost rows, records or (key, amount) pairs
        commissions: Commission rows, records or (key, amount) pairs
        group_by: Ordered key dimensions (1-3 of DIMENSIONS)
        join: Which keys to emit (default FULL: every key on either side)
        precision: Decimal places to quantize sums to (None = exact)
        strict: Raise DataQualityError on negative sums instead of logging

    Returns:
        One row per selected key, sorted by key. Missing sides default to 0
        and delta is always commission - research_cost.

    """
    join = JoinMode(join)
    if precision is not None and precision < 0:
        raise ValueError("precision must be >= 0")

    cost_sums = aggregate(costs, group_by)
    commission_sums = aggregate(commissions, group_by)

    _check_negative(cost_sums, "research_cost", strict)
    _check_negative(commission_sums, "commission", strict)

    rows = []
    for key in sorted(_select_keys(set(cost_sums), set(commission_sums), join)):
        research_cost = _quantize(cost_sums.get(key, ZERO), precision)
        commission = _quantize(commission_sums.get(key, ZERO), precision)
        rows.append(
            ReconciliationRow(
                key=key,
                research_cost=research_cost,
                commission=commission,
                delta=commission - research_cost,
            )
        )
    return rows


def totals(rows: Iterable[ReconciliationRow]) -> dict[str, Decimal]:
    """Column totals across reconciliation rows."""
    out = {"research_cost": ZERO, "commission": ZERO, "delta": ZERO}
    for row in rows:
        out["research_cost"] += row.research_cost
        out["commission"] += row.commission
        out["delta"] += row.delta
    return out
