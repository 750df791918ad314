"""
Tests for the IVA split and tariff resolution.
"""

from datetime import date
from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from billing_engines.tariff import find_overlaps, resolve_tariff, validate_tariff_schedule
from billing_engines.tax import split_iva
from billing_kernel.domain.values import Money
from billing_kernel.exceptions import NoEffectiveTariffError, TariffOverlapError
from tests.conftest import make_tariff


class TestSplitIva:

    def test_nineteen_percent(self):
        split = split_iva(Money.of(11000, "CLP"), Decimal("0.19"))
        assert split.net.amount == Decimal("9244")
        assert split.tax.amount == Decimal("1756")

    def test_zero_rate(self):
        split = split_iva(Money.of(11000, "CLP"), Decimal("0"))
        assert split.net.amount == Decimal("11000")
        assert split.tax.is_zero

    def test_zero_gross(self):
        split = split_iva(Money.zero("CLP"), Decimal("0.19"))
        assert split.net.is_zero
        assert split.tax.is_zero

    @pytest.mark.parametrize("rate", ["1", "1.19", "-0.1"])
    def test_rate_out_of_range(self, rate):
        with pytest.raises(ValueError):
            split_iva(Money.of(100, "CLP"), Decimal(rate))

    @given(
        gross=st.integers(min_value=0, max_value=10**10),
        rate=st.decimals(min_value=0, max_value="0.99", places=2, allow_nan=False),
    )
    def test_net_plus_tax_equals_gross(self, gross, rate):
        split = split_iva(Money.of(gross, "CLP"), rate)
        assert split.net + split.tax == Money.of(gross, "CLP")
        assert split.net.amount == split.net.amount.to_integral_value()


class TestResolveTariff:

    def test_single_match(self):
        old = make_tariff(date(2023, 1, 1), date(2024, 1, 1))
        current = make_tariff(date(2024, 1, 1))
        assert resolve_tariff([old, current], date(2024, 3, 31)) is current

    def test_boundary_day_belongs_to_new_tariff(self):
        old = make_tariff(date(2023, 1, 1), date(2024, 1, 1))
        current = make_tariff(date(2024, 1, 1))
        assert resolve_tariff([old, current], date(2024, 1, 1)) is current
        assert resolve_tariff([old, current], date(2023, 12, 31)) is old

    def test_no_tariff_is_fatal(self, captured_logs):
        with pytest.raises(NoEffectiveTariffError) as exc_info:
            resolve_tariff([make_tariff(date(2025, 1, 1))], date(2024, 3, 31))
        assert exc_info.value.code == "NO_EFFECTIVE_TARIFF"
        assert exc_info.value.billing_date == "2024-03-31"
        errors = [r for r in captured_logs() if r["message"] == "no_effective_tariff"]
        assert errors and errors[0]["level"] == "ERROR"

    def test_overlap_rejected(self):
        a = make_tariff(date(2024, 1, 1))
        b = make_tariff(date(2024, 3, 1))
        with pytest.raises(TariffOverlapError) as exc_info:
            resolve_tariff([a, b], date(2024, 3, 31))
        assert set(exc_info.value.tariff_ids) == {str(a.tariff_id), str(b.tariff_id)}


class TestTariffSchedule:

    def test_contiguous_schedule_valid(self):
        schedule = [
            make_tariff(date(2023, 1, 1), date(2024, 1, 1)),
            make_tariff(date(2024, 1, 1), date(2024, 7, 1)),
            make_tariff(date(2024, 7, 1)),
        ]
        assert find_overlaps(schedule) == []
        validate_tariff_schedule(schedule)

    def test_open_ended_followed_by_another(self):
        open_ended = make_tariff(date(2023, 1, 1))
        later = make_tariff(date(2024, 1, 1), date(2024, 7, 1))
        assert find_overlaps([later, open_ended]) == [(open_ended, later)]
        with pytest.raises(TariffOverlapError) as exc_info:
            validate_tariff_schedule([open_ended, later])
        assert exc_info.value.billing_date == "2024-01-01"
