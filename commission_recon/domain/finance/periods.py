"""Reporting period resolution.

NO DATA ACCESS - pure functions only.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date
from typing import Protocol, TypeVar


class _Dated(Protocol):
    d: date


T = TypeVar("T", bound=_Dated)


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range [start, end]."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end


def resolve_range(
    start: date | None = None, end: date | None = None, today: date | None = None
) -> DateRange:
    """Fill in missing bounds.

    Args:
        start: First day included (default: Jan 1 of the current year)
        end: Last day included (default: today)
        today: Reference date, injectable for tests

    Returns:
        DateRange with both bounds set

    Raises:
        ValueError: If the resolved start is after the resolved end

    """
    today = today or date.today()
    return DateRange(
        start=start if start is not None else date(today.year, 1, 1),
        end=end if end is not None else today,
    )


def filter_by_range(rows: Iterable[T], date_range: DateRange) -> Iterator[T]:
    """Yield rows whose date falls inside the range (both bounds inclusive)."""
    return (row for row in rows if date_range.contains(row.d))
