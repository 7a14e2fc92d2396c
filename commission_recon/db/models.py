"""SQLAlchemy ORM models for the reconciliation source tables.

In production these are Delta tables in Databricks populated by the upstream
CDC pipeline; the models describe the columns the report queries read and
are used to create a local schema for development and tests.

All dates are business dates without time zone.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class ResearchEvent(Base):
    """Research consumption event (call, meeting, model access) valued at cost."""

    __tablename__ = "research_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    event_date: Mapped[date] = mapped_column(Date, index=True)
    broker: Mapped[str] = mapped_column(String(100), index=True)  # Resolved parent broker or "Other"
    individual: Mapped[str | None] = mapped_column(String(100), nullable=True)  # Analyst name
    account: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cost: Mapped[Decimal] = mapped_column(Numeric(18, 6))

    __table_args__ = (Index("ix_research_events_date_broker", "event_date", "broker"),)


class Commission(Base):
    """Commission paid to a broker on a trade."""

    __tablename__ = "commissions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    trade_date: Mapped[date] = mapped_column(Date, index=True)
    broker: Mapped[str] = mapped_column(String(100), index=True)
    account: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 6))

    __table_args__ = (Index("ix_commissions_date_broker", "trade_date", "broker"),)


class SplitWeight(Base):
    """Maps an individual or account to a team with a fractional weight.

    One name can be split across several teams; weights for a name are
    expected to sum to 1.
    """

    __tablename__ = "split_weights"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), index=True)  # individual or account
    team: Mapped[str] = mapped_column(String(100))
    individual: Mapped[str | None] = mapped_column(String(100), nullable=True)  # Covering analyst (accounts only)
    weight: Mapped[Decimal] = mapped_column(Numeric(9, 6))
