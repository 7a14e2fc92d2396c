"""Reconciliation report service facade.

Loads transaction-level rows from the warehouse with parameterized SQL and
hands them to the pure reconciliation logic in ``domain.finance``.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import Date, Numeric, String, text

from commission_recon.core.config import Settings, get_settings
from commission_recon.core.metrics import recon_reports_total, recon_rows_total
from commission_recon.domain.finance.periods import DateRange, resolve_range
from commission_recon.domain.finance.policy import BrokerPolicy, build_report, get_variant
from commission_recon.domain.finance.recon import JoinMode, SourceRow, totals

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_ROW_TYPES = {
    "d": Date,
    "broker": String,
    "team": String,
    "individual": String,
    "account": String,
    "amount": Numeric(30, 12),
}

# Research events are split to teams by analyst
_COST_SQL = """
    SELECT e.event_date AS d,
           e.broker AS broker,
           s.team AS team,
           e.individual AS individual,
           e.account AS account,
           e.cost * COALESCE(s.weight, 1) AS amount
    FROM {cost_table} e
    LEFT JOIN {split_table} s ON s.name = e.individual
    WHERE e.event_date BETWEEN :d1 AND :d2
"""

# Commissions are split to teams (and covering analysts) by account
_COMMISSION_SQL = """
    SELECT c.trade_date AS d,
           c.broker AS broker,
           s.team AS team,
           s.individual AS individual,
           c.account AS account,
           c.amount * COALESCE(s.weight, 1) AS amount
    FROM {commission_table} c
    LEFT JOIN {split_table} s ON s.name = c.account
    WHERE c.trade_date BETWEEN :d1 AND :d2
"""


def _fetch_rows(
    db: Session, sql: str, broker_column: str, date_range: DateRange, broker: str | None
) -> list[SourceRow]:
    params: dict[str, Any] = {"d1": date_range.start, "d2": date_range.end}
    if broker:
        sql += f"      AND {broker_column} = :broker\n"
        params["broker"] = broker

    result = db.execute(text(sql).columns(**_ROW_TYPES), params).mappings().all()
    return [
        SourceRow(
            d=r["d"],
            amount=r["amount"] if isinstance(r["amount"], Decimal) else Decimal(str(r["amount"])),
            broker=r["broker"],
            team=r["team"],
            individual=r["individual"],
            account=r["account"],
        )
        for r in result
    ]


def load_cost_rows(
    db: Session,
    date_range: DateRange,
    broker: str | None = None,
    settings: Settings | None = None,
) -> list[SourceRow]:
    """Load weighted research cost rows for the period."""
    settings = settings or get_settings()
    sql = _COST_SQL.format(cost_table=settings.cost_table, split_table=settings.split_table)
    return _fetch_rows(db, sql, "e.broker", date_range, broker)


def load_commission_rows(
    db: Session,
    date_range: DateRange,
    broker: str | None = None,
    settings: Settings | None = None,
) -> list[SourceRow]:
    """Load weighted commission rows for the period."""
    settings = settings or get_settings()
    sql = _COMMISSION_SQL.format(
        commission_table=settings.commission_table, split_table=settings.split_table
    )
    return _fetch_rows(db, sql, "c.broker", date_range, broker)


def report_columns(variant: str) -> list[str]:
    """Fixed output columns of a report variant."""
    return get_variant(variant).columns


def run_report(
    db: Session,
    variant: str,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    broker: str | None = None,
    join: JoinMode | str | None = None,
    precision: int | None = None,
    strict: bool = False,
    settings: Settings | None = None,
) -> dict:
    """Build one reconciliation report.

    Raises:
        KeyError: Unknown variant
        ValueError: Invalid period, join mode or missing broker
        DataQualityError: Negative sums while strict

    """
    settings = settings or get_settings()
    report = get_variant(variant)
    if report.requires_broker and not broker:
        raise ValueError(f"Report variant '{variant}' requires a broker")

    date_range = resolve_range(date_from, date_to)
    if precision is None:
        precision = settings.recon_default_precision

    try:
        costs = load_cost_rows(db, date_range, broker, settings)
        commissions = load_commission_rows(db, date_range, broker, settings)
        rows = build_report(
            costs,
            commissions,
            report,
            date_range,
            policy=BrokerPolicy(unresolved_values=settings.unresolved_brokers),
            broker=broker,
            join=join,
            precision=precision,
            strict=strict,
        )
    except Exception:
        recon_reports_total.labels(variant=variant, status="failed").inc()
        raise

    recon_reports_total.labels(variant=variant, status="success").inc()
    recon_rows_total.labels(variant=variant).inc(len(rows))
    logger.info(
        f"Report {variant}: {len(rows)} rows for {date_range.start}..{date_range.end}",
        extra={"variant": variant, "costs": len(costs), "commissions": len(commissions)},
    )

    return {
        "status": "success",
        "variant": variant,
        "group_by": list(report.group_by),
        "join": JoinMode(join if join is not None else report.join).value,
        "date_from": date_range.start.isoformat(),
        "date_to": date_range.end.isoformat(),
        "broker": broker,
        "rows": [r.as_dict(report.group_by) for r in rows],
        "totals": totals(rows),
    }
