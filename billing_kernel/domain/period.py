"""BillingPeriod -- the monthly window a boleta covers."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True, slots=True)
class BillingPeriod:
    """
    A billing window from ``start`` (first billed day) to ``end`` (last billed day).

    Overlap checks use both bounds inclusively, the way discount validity
    windows and reconnection dates are compared against a period.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Period start {self.start} is after end {self.end}")

    @classmethod
    def for_month(cls, year: int, month: int) -> BillingPeriod:
        last_day = calendar.monthrange(year, month)[1]
        return cls(start=date(year, month, 1), end=date(year, month, last_day))

    @property
    def label(self) -> str:
        """``YYYY-MM`` of the period start."""
        return f"{self.start.year:04d}-{self.start.month:02d}"

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def overlaps(self, valid_from: date | None, valid_to: date | None) -> bool:
        """True when ``[valid_from, valid_to]`` touches the period (None = unbounded)."""
        if valid_from is not None and valid_from > self.end:
            return False
        if valid_to is not None and valid_to < self.start:
            return False
        return True

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"
