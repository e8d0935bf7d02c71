"""
SiteBooks - Invoice Service

Issues invoices for jobs:
- Assigns the next INV-{year}-{NNNN} number for the user
- Stamps the issue date and computes the due date from the job's payment terms
- Recalculates the invoiced amount from invoice lines when the job has any

Invoice numbers are claimed optimistically. Two requests for the same user
can read the same count; the (user_id, invoice_number) unique constraint
rejects the second commit, which rolls back, re-counts and tries again.
The job row is locked while numbering so a job is never numbered twice.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sitebooks.config import get_settings
from sitebooks.database.models import JobDB, InvoiceItemDB
from sitebooks.services.errors import InvoiceNumberConflictError, RecordNotFoundError
from sitebooks.services.invoicing import (
    compute_due_date,
    invoice_number_prefix,
    invoice_total,
    line_item_amount,
    next_invoice_number,
)

logger = logging.getLogger(__name__)


class InvoiceService:
    """Service for issuing invoices and managing invoice lines"""

    def __init__(self, db: AsyncSession, max_retries: Optional[int] = None):
        self.db = db
        self.max_retries = max_retries or get_settings().INVOICE_NUMBER_MAX_RETRIES

    async def get_job(self, job_id: str, user_id: str, for_update: bool = False) -> JobDB:
        query = select(JobDB).where(JobDB.id == job_id, JobDB.user_id == user_id)
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        job = result.scalar_one_or_none()

        if not job:
            raise RecordNotFoundError(f"Job {job_id} not found")
        return job

    async def count_numbered_invoices(self, user_id: str, year: int) -> int:
        """Invoices already numbered for the user in a calendar year."""
        result = await self.db.execute(
            select(func.count())
            .select_from(JobDB)
            .where(
                JobDB.user_id == user_id,
                JobDB.invoice_number.like(f"{invoice_number_prefix(year)}%"),
            )
        )
        return result.scalar_one()

    async def get_items(self, job_id: str) -> List[InvoiceItemDB]:
        result = await self.db.execute(
            select(InvoiceItemDB)
            .where(InvoiceItemDB.job_id == job_id)
            .order_by(InvoiceItemDB.item_order)
        )
        return list(result.scalars().all())

    async def issue_invoice(
        self,
        job_id: str,
        user_id: str,
        issue_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Number a job's invoice and set its due date.

        A job that already has a number is returned unchanged; numbers are
        stable for the invoice's lifetime.

        Raises:
            RecordNotFoundError: job does not belong to the user
            InvoiceNumberConflictError: every attempt collided with another writer
        """
        issue_date = issue_date or date.today()
        year = issue_date.year

        for attempt in range(1, self.max_retries + 1):
            job = await self.get_job(job_id, user_id, for_update=True)

            if job.invoice_number:
                logger.info(f"Job {job_id} already invoiced as {job.invoice_number}")
                await self.db.commit()
                return job.to_dict()

            items = await self.get_items(job_id)
            count = await self.count_numbered_invoices(user_id, year)
            number = next_invoice_number(count, year)

            terms = job.payment_terms if job.payment_terms is not None else get_settings().DEFAULT_PAYMENT_TERMS_DAYS
            job.invoice_number = number
            job.invoice_issue_date = issue_date
            job.payment_due_date = compute_due_date(issue_date, terms)
            if items:
                job.amount_invoiced = invoice_total(items)

            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                logger.warning(
                    f"Invoice number {number} already taken for user {user_id} "
                    f"(attempt {attempt}/{self.max_retries}), re-counting"
                )
                continue

            logger.info(f"Issued invoice {number} for job {job_id}, due {job.payment_due_date}")
            return job.to_dict()

        raise InvoiceNumberConflictError(
            f"Could not assign a unique invoice number for job {job_id} after {self.max_retries} attempts"
        )

    async def add_item(
        self,
        job_id: str,
        user_id: str,
        description: str,
        unit_price,
        quantity=1,
    ) -> Dict[str, Any]:
        """Append an invoice line; its amount is quantity x unit price."""
        amount = line_item_amount(quantity, unit_price)
        await self.get_job(job_id, user_id)
        items = await self.get_items(job_id)

        item = InvoiceItemDB(
            user_id=user_id,
            job_id=job_id,
            description=description,
            quantity=quantity,
            unit_price=unit_price,
            amount=amount,
            item_order=len(items),
        )
        self.db.add(item)
        await self.db.commit()

        logger.info(f"Added invoice line to job {job_id}: {description} = {amount}")

        return {
            "job_id": job_id,
            "description": description,
            "amount": float(amount),
            "item_order": item.item_order,
            "lines_total": float(invoice_total([*items, item])),
        }
