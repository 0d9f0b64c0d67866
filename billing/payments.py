import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from billing.errors import AttemptNotFoundError, InvalidStateError, InvoiceNotFoundError, PaymentFailedError
from billing.idempotency import IdempotencyIndex
from billing.invoices import InvoiceStore
from billing.models import AttemptStatus, Invoice, InvoiceStatus, PaymentAttempt, utcnow
from billing.outcome import Outcome, decide

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (AttemptStatus.CONFIRMED.value, AttemptStatus.FAILED.value)


def new_attempt_id() -> str:
    return f"pa_{uuid.uuid4().hex}"


class PaymentAttemptStore:
    def __init__(self, session_factory, invoices: InvoiceStore, index: Optional[IdempotencyIndex] = None):
        self._session_factory = session_factory
        self._invoices = invoices
        self._index = index or IdempotencyIndex()

    def create(self, invoice_id: str, idempotency_key: Optional[str] = None) -> Tuple[PaymentAttempt, bool]:
        """Returns ``(attempt, created)``; ``created`` is False on an idempotent replay."""
        with self._session_factory() as db:
            invoice = db.execute(select(Invoice).filter_by(id=invoice_id)).scalars().first()
            if invoice is None:
                raise InvoiceNotFoundError(invoice_id)

            attempt_id, reserved = self._index.reserve_or_get(db, invoice_id, idempotency_key, new_attempt_id())
            if not reserved:
                logger.info("Replaying attempt %s for key %r on invoice %s", attempt_id, idempotency_key, invoice_id)
                return db.get(PaymentAttempt, attempt_id), False

            if invoice.status != InvoiceStatus.UNPAID.value:
                raise InvalidStateError(f"Invoice {invoice_id!r} is {invoice.status} and cannot take new payments")

            attempt = PaymentAttempt(
                id=attempt_id,
                invoice_id=invoice_id,
                idempotency_key=idempotency_key,
                status=AttemptStatus.PENDING.value,
            )
            db.add(attempt)
            try:
                db.commit()
            except IntegrityError:
                # Lost the race for this key; the winner's attempt is committed.
                db.rollback()
                winner = self._index.lookup(db, invoice_id, idempotency_key) if idempotency_key else None
                if winner is None:
                    raise
                logger.info("Key %r on invoice %s already taken by %s", idempotency_key, invoice_id, winner)
                return db.get(PaymentAttempt, winner), False

        logger.info("Created payment attempt %s for invoice %s", attempt.id, invoice_id)
        return attempt, True

    def get(self, attempt_id: str) -> PaymentAttempt:
        with self._session_factory() as db:
            attempt = db.get(PaymentAttempt, attempt_id)
        if attempt is None:
            raise AttemptNotFoundError(attempt_id)
        return attempt

    def confirm(self, attempt_id: str, forced: Optional[Outcome] = None) -> PaymentAttempt:
        # a decline is committed as failed, then raised as PaymentFailedError
        with self._session_factory() as db:
            attempt = db.get(PaymentAttempt, attempt_id)
            if attempt is None:
                raise AttemptNotFoundError(attempt_id)
            if attempt.status in TERMINAL_STATUSES:
                return attempt

            amount = db.execute(
                select(Invoice.amount_minor).where(Invoice.id == attempt.invoice_id)
            ).scalar_one()
            outcome = decide(amount, forced)
            new_status = AttemptStatus.CONFIRMED if outcome is Outcome.SUCCESS else AttemptStatus.FAILED

            # compare-and-set: only one confirmation can move the attempt off pending
            result = db.execute(
                update(PaymentAttempt)
                .where(PaymentAttempt.id == attempt_id, PaymentAttempt.status == AttemptStatus.PENDING.value)
                .values(status=new_status.value, updated_at=utcnow())
            )
            if result.rowcount == 0:
                db.rollback()
                db.expire_all()
                return db.get(PaymentAttempt, attempt_id)

            if new_status is AttemptStatus.CONFIRMED:
                self._invoices.mark_paid(db, attempt.invoice_id)
            db.commit()
            db.refresh(attempt)

        if new_status is AttemptStatus.FAILED:
            logger.warning("Payment attempt %s declined (amount_minor=%s, forced=%s)", attempt_id, amount, forced)
            raise PaymentFailedError(attempt)
        logger.info("Payment attempt %s confirmed; invoice %s paid", attempt_id, attempt.invoice_id)
        return attempt
