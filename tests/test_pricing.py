"""Unit tests for the rental pricing engine."""

from datetime import date
from decimal import Decimal

import pytest

from src.domain.entities import DateRange
from src.domain.errors import ValidationError
from src.domain.pricing import MAX_AMOUNT, PricingEngine, to_money


class TestToMoney:
    def test_rounds_half_up_to_cents(self):
        assert to_money("10.005") == Decimal("10.01")
        assert to_money("10.004") == Decimal("10.00")

    def test_float_goes_through_its_repr(self):
        # 0.1 + 0.2 would be 0.30000000000000004 as a binary float
        assert to_money(0.1 + 0.2) == Decimal("0.30")

    def test_int(self):
        assert to_money(45) == Decimal("45.00")


class TestPricingEngine:
    def setup_method(self):
        self.engine = PricingEngine()

    def test_rental_days_is_day_difference(self):
        period = DateRange(date(2030, 1, 15), date(2030, 1, 18))
        assert self.engine.rental_days(period) == 3

    def test_one_night_is_one_day(self):
        period = DateRange(date(2030, 1, 15), date(2030, 1, 16))
        assert self.engine.total_price(period, Decimal("50.00")) == Decimal("50.00")

    def test_total_is_days_times_rate(self):
        period = DateRange(date(2030, 1, 15), date(2030, 1, 18))
        assert self.engine.total_price(period, Decimal("50.00")) == Decimal("150.00")

    def test_spans_month_and_leap_day(self):
        period = DateRange(date(2028, 2, 27), date(2028, 3, 2))  # 2028 is a leap year
        assert self.engine.total_price(period, Decimal("20")) == Decimal("80.00")

    @pytest.mark.parametrize("rate", [Decimal("33.33"), 33.33, "33.33"])
    def test_rate_representation_does_not_change_total(self, rate):
        period = DateRange(date(2030, 1, 1), date(2030, 1, 4))
        assert self.engine.total_price(period, rate) == Decimal("99.99")

    def test_same_inputs_same_total(self):
        period = DateRange(date(2030, 5, 1), date(2030, 5, 11))
        totals = {self.engine.total_price(period, Decimal("12.34")) for _ in range(5)}
        assert totals == {Decimal("123.40")}

    def test_largest_storable_total_is_accepted(self):
        period = DateRange(date(2030, 1, 1), date(2030, 1, 3))
        total = self.engine.total_price(period, Decimal("49999999.99"))
        assert total == Decimal("99999999.98")
        assert total < MAX_AMOUNT

    def test_total_that_does_not_fit_a_money_column_is_rejected(self):
        period = DateRange(date(2030, 1, 1), date(2030, 1, 3))
        with pytest.raises(ValidationError, match="shorter rental period"):
            self.engine.total_price(period, Decimal("50000000.00"))

    def test_very_long_rental_at_an_ordinary_rate_is_rejected(self):
        period = DateRange(date(2030, 1, 15), date(9999, 12, 31))
        with pytest.raises(ValidationError):
            self.engine.total_price(period, Decimal("50.00"))
