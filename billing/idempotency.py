from typing import Optional, Tuple

from sqlalchemy import select

from billing.models import IdempotencyRecord


class IdempotencyIndex:
    # Records share the attempt's transaction; never updated or deleted.

    def lookup(self, db, invoice_id: str, key: str) -> Optional[str]:
        return db.execute(
            select(IdempotencyRecord.payment_attempt_id).where(
                IdempotencyRecord.invoice_id == invoice_id,
                IdempotencyRecord.idempotency_key == key,
            )
        ).scalar_one_or_none()

    def reserve_or_get(self, db, invoice_id: str, key: Optional[str], attempt_id: str) -> Tuple[str, bool]:
        """Returns (attempt_id, reserved). No key means no dedup."""
        if key is None:
            return attempt_id, True
        existing = self.lookup(db, invoice_id, key)
        if existing is not None:
            return existing, False
        db.add(IdempotencyRecord(invoice_id=invoice_id, idempotency_key=key, payment_attempt_id=attempt_id))
        return attempt_id, True
