from typing import Any, List, Optional, Tuple

from billing.config import settings
from billing.idempotency import IdempotencyIndex
from billing.invoices import InvoiceStore
from billing.models import Invoice, PaymentAttempt
from billing.payments import PaymentAttemptStore
from billing.validation import (
    encode_cursor,
    validate_forced_outcome,
    validate_idempotency_key,
    validate_invoice_payload,
    validate_page,
    validate_payment_attempt_payload,
)


class BillingService:
    def __init__(self, session_factory, page_default: Optional[int] = None, page_max: Optional[int] = None):
        self.invoices = InvoiceStore(session_factory)
        self.attempts = PaymentAttemptStore(session_factory, self.invoices, IdempotencyIndex())
        self.page_default = page_default or settings.invoice_page_default
        self.page_max = page_max or settings.invoice_page_max

    def create_invoice(self, payload: Any) -> Invoice:
        return self.invoices.create(validate_invoice_payload(payload))

    def get_invoice(self, invoice_id: str) -> Invoice:
        return self.invoices.get(invoice_id)

    def list_invoices(self, limit=None, cursor: Optional[str] = None) -> Tuple[List[Invoice], Optional[str]]:
        limit, after = validate_page(limit, cursor, self.page_default, self.page_max)
        items, last_seq = self.invoices.list(limit, after)
        return items, encode_cursor(last_seq) if last_seq is not None else None

    def create_payment_attempt(self, payload: Any, idempotency_key: Optional[str] = None) -> Tuple[PaymentAttempt, bool]:
        data = validate_payment_attempt_payload(payload)
        key = validate_idempotency_key(idempotency_key)
        return self.attempts.create(data.invoice_id, key)

    def get_payment_attempt(self, attempt_id: str) -> PaymentAttempt:
        return self.attempts.get(attempt_id)

    def confirm_payment_attempt(self, attempt_id: str, forced_outcome: Optional[str] = None) -> PaymentAttempt:
        forced = validate_forced_outcome(forced_outcome)
        return self.attempts.confirm(attempt_id, forced)
