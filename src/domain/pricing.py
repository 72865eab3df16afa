"""
Rental Pricing
==============

Formula
-------
Total = Days x Daily_Rate

* **Days** = ceil((end - start) / 1 day).  Dates carry no time component,
  so this is the plain day difference.
* The rate is read once, when the booking is created; later changes to the
  vehicle's rate never touch existing bookings.

Amounts are ``Decimal`` rounded to cents and stored as ``NUMERIC(10, 2)``,
so every amount must stay below ``MAX_AMOUNT``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from .entities import DateRange
from .errors import ValidationError

CENT = Decimal("0.01")
# NUMERIC(10, 2)
MAX_AMOUNT = Decimal("100000000")


def to_money(value: Decimal | float | int | str) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class PricingEngine:
    """Computes booking totals from a date range and a daily rate."""

    @staticmethod
    def rental_days(period: DateRange) -> int:
        return period.days

    def total_price(self, period: DateRange, daily_rate: Decimal | float) -> Decimal:
        total = to_money(to_money(daily_rate) * self.rental_days(period))
        if total >= MAX_AMOUNT:
            raise ValidationError(
                f"Booking total {total} exceeds the maximum of {MAX_AMOUNT - CENT}; "
                "choose a shorter rental period"
            )
        return total
