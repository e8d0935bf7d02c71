"""
SiteBooks - Payment Service

Records and deletes payments and keeps each job's amount_paid and
payment_status in step with its payments.

Every change runs as one transaction:
1. lock the job row
2. insert or delete the payment
3. re-read the job's complete payment set
4. reconcile() and write amount_paid / payment_status
5. commit (or roll back everything)

Status is always recomputed from the full payment set, never patched.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from sitebooks.database.models import JobDB, PaymentDB
from sitebooks.services.errors import RecordNotFoundError
from sitebooks.services.invoicing import days_overdue
from sitebooks.services.reconciliation import (
    STATUS_HIERARCHY,
    Payment,
    PaymentMethod,
    PaymentStatus,
    ReconciliationResult,
    reconcile,
)

logger = logging.getLogger(__name__)

_STATUS_VALUES = {status.value for status in PaymentStatus}


class PaymentService:
    """Service for payment tracking against job invoices"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_job(self, job_id: str, user_id: str, for_update: bool = False) -> JobDB:
        query = select(JobDB).where(JobDB.id == job_id, JobDB.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        job = result.scalar_one_or_none()
        if not job:
            raise RecordNotFoundError(f"Job {job_id} not found")
        return job

    async def _get_payments(self, job_id: str) -> List[PaymentDB]:
        result = await self.db.execute(
            select(PaymentDB)
            .where(PaymentDB.job_id == job_id)
            .order_by(desc(PaymentDB.payment_date))
        )
        return list(result.scalars().all())

    async def _reconcile_job(self, job: JobDB) -> ReconciliationResult:
        """Recompute and write the job's payment state from a fresh read."""
        previous = job.payment_status
        payments = await self._get_payments(job.id)
        result = reconcile(job.amount_invoiced or 0, payments)

        if previous in _STATUS_VALUES and STATUS_HIERARCHY[result.status] < STATUS_HIERARCHY[PaymentStatus(previous)]:
            logger.info(f"Job {job.id} payment status moved back from {previous} to {result.status.value}")

        job.amount_paid = result.total_paid
        job.payment_status = result.status.value
        return result

    async def record_payment(
        self,
        job_id: str,
        user_id: str,
        amount,
        payment_date: date,
        method: str = PaymentMethod.CASH.value,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Record a payment and reconcile the job.

        Raises:
            InvalidAmountError: amount is not a positive number
            RecordNotFoundError: job does not belong to the user
        """
        # Validates before anything touches the database
        payment = Payment(amount=amount, date=payment_date, method=method, reference=reference or None)

        try:
            job = await self._get_job(job_id, user_id, for_update=True)

            row = PaymentDB(
                user_id=user_id,
                job_id=job_id,
                amount=payment.amount,
                payment_date=payment.date,
                payment_method=payment.method.value,
                reference=payment.reference,
                notes=notes,
            )
            self.db.add(row)
            await self.db.flush()

            result = await self._reconcile_job(job)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Payment of {payment.amount} recorded for job {job_id}: "
            f"paid {result.total_paid}, status {result.status.value}"
        )

        return {
            "job_id": job_id,
            "payment": row.to_dict(),
            "invoice_total": float(job.amount_invoiced or 0),
            **result.to_dict(),
        }

    async def delete_payment(self, payment_id: str, user_id: str) -> Dict[str, Any]:
        """
        Delete a payment and reconcile its job.

        Raises:
            RecordNotFoundError: payment does not belong to the user
        """
        try:
            result = await self.db.execute(
                select(PaymentDB).where(PaymentDB.id == payment_id, PaymentDB.user_id == user_id)
            )
            row = result.scalar_one_or_none()
            if not row:
                raise RecordNotFoundError(f"Payment {payment_id} not found")

            job = await self._get_job(row.job_id, user_id, for_update=True)

            await self.db.delete(row)
            await self.db.flush()

            reconciled = await self._reconcile_job(job)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Payment {payment_id} deleted from job {job.id}: "
            f"paid {reconciled.total_paid}, status {reconciled.status.value}"
        )

        return {
            "job_id": job.id,
            "deleted_payment_id": payment_id,
            "invoice_total": float(job.amount_invoiced or 0),
            **reconciled.to_dict(),
        }

    async def get_payment_summary(
        self,
        job_id: str,
        user_id: str,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Payment history plus a freshly reconciled summary (read-only)."""
        job = await self._get_job(job_id, user_id)
        payments = await self._get_payments(job_id)
        result = reconcile(job.amount_invoiced or 0, payments)

        return {
            "job_id": job_id,
            "invoice_number": job.invoice_number,
            "invoice_total": float(job.amount_invoiced or 0),
            "payment_due_date": job.payment_due_date.isoformat() if job.payment_due_date else None,
            "days_overdue": days_overdue(job.payment_due_date, today or date.today(), result.status),
            "payments": [p.to_dict() for p in payments],
            **result.to_dict(),
        }
