import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from billing.errors import DuplicateInvoiceError, InvoiceNotFoundError
from billing.models import Invoice, InvoiceStatus
from billing.validation import InvoiceCreate

logger = logging.getLogger(__name__)


class InvoiceStore:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    def create(self, data: InvoiceCreate) -> Invoice:
        invoice = Invoice(
            id=data.id,
            customer_id=data.customer_id,
            currency=data.currency,
            amount_minor=data.amount_minor,
            due_date_iso=data.due_date_iso,
            status=InvoiceStatus.UNPAID.value,
        )
        with self._session_factory() as db:
            db.add(invoice)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.warning("Rejected duplicate invoice id %s", data.id)
                raise DuplicateInvoiceError(data.id)
        logger.info("Created invoice %s (%s %s)", invoice.id, invoice.amount_minor, invoice.currency)
        return invoice

    def get(self, invoice_id: str) -> Invoice:
        with self._session_factory() as db:
            invoice = db.execute(select(Invoice).filter_by(id=invoice_id)).scalars().first()
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def list(self, limit: int, after: Optional[int] = None) -> Tuple[List[Invoice], Optional[int]]:
        # returns (page, seq to resume after or None)
        query = select(Invoice).order_by(Invoice.seq).limit(limit + 1)
        if after is not None:
            query = query.where(Invoice.seq > after)
        with self._session_factory() as db:
            rows = list(db.execute(query).scalars())
        if len(rows) > limit:
            rows = rows[:limit]
            return rows, rows[-1].seq
        return rows, None

    def mark_paid(self, db, invoice_id: str) -> bool:
        # unpaid -> paid in the caller's transaction; other statuses are left alone
        result = db.execute(
            update(Invoice)
            .where(Invoice.id == invoice_id, Invoice.status == InvoiceStatus.UNPAID.value)
            .values(status=InvoiceStatus.PAID.value)
        )
        return result.rowcount == 1
