"""
SiteBooks - Mileage Service

Logs business trips. The HMRC band a trip falls into depends on the miles
already logged in the same tax year, so each new trip is priced against the
sum of every entry the user holds for that tax year, whatever its date.
A back-dated trip is therefore priced after the miles logged before it and
the year's total claim never exceeds the HMRC allowance.

On PostgreSQL, trip logging takes a transaction-scoped advisory lock per
user and tax year, so two trips logged at once cannot both read the same
prior total.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from sitebooks.database.models import MileageEntryDB, generate_uuid
from sitebooks.services.mileage import calculate_mileage
from sitebooks.services.money import non_negative
from sitebooks.services.tax_year import FiscalYear, resolve_fiscal_year

logger = logging.getLogger(__name__)


class MileageService:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _supports_advisory_locks(self) -> bool:
        bind = self.db.bind
        return bind is not None and bind.dialect.name == "postgresql"

    async def _lock_user_year(self, user_id: str, fiscal_year: FiscalYear):
        """Serialise trip logging for one user and tax year until commit or rollback."""
        if not self._supports_advisory_locks():
            return
        await self.db.execute(
            select(func.pg_advisory_xact_lock(func.hashtext(f"mileage:{user_id}:{fiscal_year.label}")))
        )

    async def prior_year_miles(self, user_id: str, fiscal_year: FiscalYear) -> Decimal:
        """Miles already logged anywhere in the tax year."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(MileageEntryDB.miles), 0))
            .where(
                MileageEntryDB.user_id == user_id,
                MileageEntryDB.date >= fiscal_year.start_date,
                MileageEntryDB.date <= fiscal_year.end_date,
            )
        )
        return Decimal(str(result.scalar_one()))

    async def log_trip(
        self,
        user_id: str,
        trip_date: date,
        miles,
        job_id: Optional[str] = None,
        from_location: Optional[str] = None,
        to_location: Optional[str] = None,
        purpose: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Price and store a trip.

        Raises:
            InvalidAmountError: miles is negative or non-numeric
            DateOutOfRangeError: trip date has no representable tax year
        """
        trip_miles = non_negative(miles, "miles")
        fiscal_year = resolve_fiscal_year(trip_date)

        try:
            await self._lock_user_year(user_id, fiscal_year)
            prior = await self.prior_year_miles(user_id, fiscal_year)

            breakdown = calculate_mileage(trip_miles, prior)

            entry = MileageEntryDB(
                id=generate_uuid(),
                user_id=user_id,
                job_id=job_id,
                date=trip_date,
                from_location=from_location,
                to_location=to_location,
                miles=trip_miles,
                rate_per_mile=breakdown.effective_rate_per_mile,
                amount=breakdown.deduction,
                purpose=purpose,
                tax_year=fiscal_year.label,
            )
            self.db.add(entry)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Logged {trip_miles} miles for user {user_id} in {fiscal_year.label}: "
            f"{breakdown.deduction} ({prior} miles already logged)"
        )

        return {
            **entry.to_dict(),
            "breakdown": breakdown.to_dict(),
        }
