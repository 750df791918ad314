"""
Tariff Resolver - pick the single tariff in effect on a billing date.

Pure functions with no I/O.  Candidate tariffs are supplied by the caller
(repository query or pre-fetched batch cache).

Usage:
    from billing_engines.tariff import resolve_tariff

    tariff = resolve_tariff(tariffs, period.end)
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence

from billing_kernel.domain.tariff import Tariff
from billing_kernel.exceptions import NoEffectiveTariffError, TariffOverlapError
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.tariff")


def resolve_tariff(tariffs: Iterable[Tariff], billing_date: date) -> Tariff:
    """
    Return the unique tariff whose ``[effective_from, effective_to)`` contains
    ``billing_date``.

    Raises:
        NoEffectiveTariffError: No tariff covers the date.  Billing cannot
            proceed for that customer/period.
        TariffOverlapError: More than one tariff covers the date.
    """
    matches = [t for t in tariffs if t.covers(billing_date)]
    if not matches:
        logger.error(
            "no_effective_tariff",
            extra={"billing_date": billing_date.isoformat()},
        )
        raise NoEffectiveTariffError(billing_date.isoformat())
    if len(matches) > 1:
        raise TariffOverlapError(
            billing_date.isoformat(), [str(t.tariff_id) for t in matches],
        )
    return matches[0]


def _ranges_overlap(a: Tariff, b: Tariff) -> bool:
    a_before_b = a.effective_to is not None and a.effective_to <= b.effective_from
    b_before_a = b.effective_to is not None and b.effective_to <= a.effective_from
    return not (a_before_b or b_before_a)


def find_overlaps(tariffs: Sequence[Tariff]) -> list[tuple[Tariff, Tariff]]:
    """All pairs of tariffs whose half-open ranges intersect."""
    ordered = sorted(tariffs, key=lambda t: t.effective_from)
    overlaps: list[tuple[Tariff, Tariff]] = []
    for i, first in enumerate(ordered):
        for second in ordered[i + 1:]:
            if _ranges_overlap(first, second):
                overlaps.append((first, second))
    return overlaps


def validate_tariff_schedule(tariffs: Sequence[Tariff]) -> None:
    """
    Check that no two tariffs are in effect on the same day.

    Raises:
        TariffOverlapError: On the first overlapping pair, reported at the
            later tariff's start date.
    """
    overlaps = find_overlaps(tariffs)
    if overlaps:
        first, second = overlaps[0]
        raise TariffOverlapError(
            second.effective_from.isoformat(),
            [str(first.tariff_id), str(second.tariff_id)],
        )
