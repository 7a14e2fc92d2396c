"""Report variants and the unresolved-broker rule.

Each variant differs only in grouping granularity, join direction and
whether research cost with an unresolved broker counts.

NO DATA ACCESS - pure functions only.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from commission_recon.domain.finance.periods import DateRange, filter_by_range
from commission_recon.domain.finance.recon import (
    JoinMode,
    ReconciliationRow,
    SourceRow,
    reconcile,
    validate_group_by,
)

UNRESOLVED_BROKER = "Other"


@dataclass(frozen=True)
class BrokerPolicy:
    """Which broker values mean "could not be mapped to a parent broker"."""

    unresolved_values: frozenset[str] = field(
        default_factory=lambda: frozenset({UNRESOLVED_BROKER})
    )
    exclude_unresolved: bool = True

    def is_unresolved(self, row: SourceRow) -> bool:
        return row.broker in self.unresolved_values

    def apply(self, rows: Iterable[SourceRow]) -> list[SourceRow]:
        if not self.exclude_unresolved:
            return list(rows)
        return [r for r in rows if not self.is_unresolved(r)]


@dataclass(frozen=True)
class ReportVariant:
    name: str
    group_by: tuple[str, ...]
    join: JoinMode = JoinMode.FULL
    exclude_unresolved: bool = True
    requires_broker: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        validate_group_by(self.group_by)

    @property
    def columns(self) -> list[str]:
        return [*self.group_by, "research_cost", "commission", "delta"]


REPORT_VARIANTS: dict[str, ReportVariant] = {
    v.name: v
    for v in (
        ReportVariant(
            "broker",
            ("broker",),
            description="Research cost vs commission per parent broker",
        ),
        ReportVariant(
            "broker_team",
            ("broker", "team"),
            description="Per broker and research team",
        ),
        ReportVariant(
            "team",
            ("team",),
            description="Per research team",
        ),
        ReportVariant(
            "individual",
            ("team", "individual"),
            description="Per analyst within team",
        ),
        ReportVariant(
            "account",
            ("team", "account"),
            exclude_unresolved=False,
            description="Per client account within team, unresolved brokers included",
        ),
        ReportVariant(
            "broker_detail",
            ("team", "individual", "account"),
            requires_broker=True,
            description="Single broker drill-down by team, analyst and account",
        ),
    )
}


def get_variant(name: str) -> ReportVariant:
    """Look up a report variant.

    Raises:
        KeyError: If no variant has this name

    """
    try:
        return REPORT_VARIANTS[name]
    except KeyError:
        raise KeyError(f"Unknown report variant '{name}'") from None


def build_report(
    cost_rows: Sequence[SourceRow],
    commission_rows: Sequence[SourceRow],
    variant: ReportVariant,
    date_range: DateRange,
    policy: BrokerPolicy | None = None,
    broker: str | None = None,
    join: JoinMode | str | None = None,
    precision: int | None = None,
    strict: bool = False,
) -> list[ReconciliationRow]:
    """Filter transaction-level rows and reconcile them for one variant.

    Args:
        cost_rows: Research cost rows
        commission_rows: Commission rows
        variant: Report definition
        date_range: Inclusive reporting period
        policy: Unresolved-broker rule; its values are used, the exclusion
            flag comes from the variant
        broker: Restrict both sides to one broker (required by some variants)
        join: Override the variant's join direction
        precision: Decimal places for amounts
        strict: Raise on negative sums

    Raises:
        ValueError: If the variant requires a broker and none was given

    """
    if variant.requires_broker and not broker:
        raise ValueError(f"Report variant '{variant.name}' requires a broker")

    policy = BrokerPolicy(
        unresolved_values=(policy or BrokerPolicy()).unresolved_values,
        exclude_unresolved=variant.exclude_unresolved,
    )

    costs = list(filter_by_range(cost_rows, date_range))
    commissions = list(filter_by_range(commission_rows, date_range))
    if broker:
        costs = [r for r in costs if r.broker == broker]
        commissions = [r for r in commissions if r.broker == broker]

    return reconcile(
        policy.apply(costs),
        commissions,
        variant.group_by,
        join=join if join is not None else variant.join,
        precision=precision,
        strict=strict,
    )
