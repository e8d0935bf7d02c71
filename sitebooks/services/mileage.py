"""
SiteBooks - HMRC Mileage Allowance Calculator

Approved mileage allowance payments for cars and vans:
- 45p per mile for the first 10,000 business miles in a tax year
- 25p per mile for every mile after that

A trip is priced against the miles already logged earlier in the same tax
year. The caller supplies that running total; this module keeps no history.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict

from sitebooks.services.money import Number, non_negative, round_currency

logger = logging.getLogger(__name__)


# ==================== HMRC RATES ====================

HIGHER_RATE_PER_MILE = Decimal("0.45")
LOWER_RATE_PER_MILE = Decimal("0.25")
RATE_THRESHOLD_MILES = Decimal("10000")


@dataclass(frozen=True)
class MileageBreakdown:
    """How a single trip splits across the two HMRC rate bands."""
    trip_miles: Decimal
    prior_year_miles: Decimal
    miles_at_higher_rate: Decimal
    miles_at_lower_rate: Decimal
    deduction: Decimal

    @property
    def effective_rate_per_mile(self) -> Decimal:
        """Blended rate actually applied; the band rate unless the trip straddles 10,000."""
        if self.trip_miles == 0:
            return LOWER_RATE_PER_MILE if self.prior_year_miles >= RATE_THRESHOLD_MILES else HIGHER_RATE_PER_MILE
        return (self.deduction / self.trip_miles).quantize(Decimal("0.0001"))

    @property
    def year_to_date_miles(self) -> Decimal:
        return self.prior_year_miles + self.trip_miles

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trip_miles": float(self.trip_miles),
            "prior_year_miles": float(self.prior_year_miles),
            "miles_at_higher_rate": float(self.miles_at_higher_rate),
            "miles_at_lower_rate": float(self.miles_at_lower_rate),
            "higher_rate": float(HIGHER_RATE_PER_MILE),
            "lower_rate": float(LOWER_RATE_PER_MILE),
            "effective_rate_per_mile": float(self.effective_rate_per_mile),
            "deduction": float(self.deduction),
        }


def calculate_mileage(trip_miles: Number, prior_year_miles: Number = 0) -> MileageBreakdown:
    """
    Split a trip across the HMRC bands and price it.

    Raises:
        InvalidAmountError: either mileage figure is negative or non-numeric
    """
    miles = non_negative(trip_miles, "trip_miles")
    prior = non_negative(prior_year_miles, "prior_year_miles")

    if prior >= RATE_THRESHOLD_MILES:
        higher, lower = Decimal("0"), miles
    elif prior + miles <= RATE_THRESHOLD_MILES:
        higher, lower = miles, Decimal("0")
    else:
        higher = RATE_THRESHOLD_MILES - prior
        lower = miles - higher

    # Single rounding on the total, never per band
    deduction = round_currency(higher * HIGHER_RATE_PER_MILE + lower * LOWER_RATE_PER_MILE)

    logger.debug(
        f"Mileage: {miles} miles after {prior} prior -> "
        f"{higher} @ {HIGHER_RATE_PER_MILE} + {lower} @ {LOWER_RATE_PER_MILE} = {deduction}"
    )

    return MileageBreakdown(
        trip_miles=miles,
        prior_year_miles=prior,
        miles_at_higher_rate=higher,
        miles_at_lower_rate=lower,
        deduction=deduction,
    )


def mileage_deduction(trip_miles: Number, prior_year_miles: Number = 0) -> Decimal:
    """HMRC deductible amount for a trip, rounded to the penny."""
    return calculate_mileage(trip_miles, prior_year_miles).deduction


def get_mileage_rates() -> Dict[str, Any]:
    """Current HMRC rate table for display."""
    return {
        "higher_rate_per_mile": float(HIGHER_RATE_PER_MILE),
        "lower_rate_per_mile": float(LOWER_RATE_PER_MILE),
        "threshold_miles": int(RATE_THRESHOLD_MILES),
    }
