"""Reconciliation report endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from commission_recon.db.session import get_db
from commission_recon.domain.finance.policy import REPORT_VARIANTS
from commission_recon.domain.finance.recon import DataQualityError, JoinMode
from commission_recon.services.recon_service import report_columns, run_report
from commission_recon.web.utils.exporters import to_csv, to_xlsx

router = APIRouter(prefix="/api/v1/recon")

DBSession = Annotated[Session, Depends(get_db)]


def _run(
    db: Session,
    variant: str,
    date_from: date | None,
    date_to: date | None,
    broker: str | None,
    join: JoinMode | None,
    precision: int | None,
    strict: bool = False,
) -> dict:
    if variant not in REPORT_VARIANTS:
        raise HTTPException(status_code=404, detail=f"Unknown report variant '{variant}'")
    try:
        return run_report(
            db,
            variant,
            date_from=date_from,
            date_to=date_to,
            broker=broker,
            join=join,
            precision=precision,
            strict=strict,
        )
    except DataQualityError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@router.get("/variants")
def list_variants():
    """List available report variants and their columns."""
    return [
        {
            "name": v.name,
            "group_by": list(v.group_by),
            "join": v.join.value,
            "exclude_unresolved": v.exclude_unresolved,
            "requires_broker": v.requires_broker,
            "columns": v.columns,
            "description": v.description,
        }
        for v in REPORT_VARIANTS.values()
    ]


@router.get("/{variant}")
def get_report(
    variant: str,
    db: DBSession,
    date_from: date | None = None,
    date_to: date | None = None,
    broker: str | None = None,
    join: JoinMode | None = None,
    precision: int | None = Query(None, ge=0, le=10),
    strict: bool = False,
):
    """Reconcile research cost and commission for one report variant.

    Amounts are returned as decimal strings.
    """
    report = _run(db, variant, date_from, date_to, broker, join, precision, strict)
    return JSONResponse(jsonable_encoder(report, custom_encoder={Decimal: str}))


@router.get("/{variant}/export.csv")
def export_report_csv(
    variant: str,
    db: DBSession,
    date_from: date | None = None,
    date_to: date | None = None,
    broker: str | None = None,
    join: JoinMode | None = None,
    precision: int | None = Query(None, ge=0, le=10),
):
    """Export a reconciliation report as CSV."""
    report = _run(db, variant, date_from, date_to, broker, join, precision)
    csv_content = to_csv(report["rows"], report_columns(variant))
    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=recon_{variant}.csv"},
    )


@router.get("/{variant}/export.xlsx")
def export_report_xlsx(
    variant: str,
    db: DBSession,
    date_from: date | None = None,
    date_to: date | None = None,
    broker: str | None = None,
    join: JoinMode | None = None,
    precision: int | None = Query(None, ge=0, le=10),
):
    """Export a reconciliation report as XLSX."""
    report = _run(db, variant, date_from, date_to, broker, join, precision)
    content = to_xlsx(report["rows"], report_columns(variant), sheet_name=f"recon_{variant}")
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename=recon_{variant}.xlsx"},
    )
