import enum
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, BigInteger, DateTime, ForeignKey, PrimaryKeyConstraint

from billing.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class InvoiceStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    EXPIRED = "expired"
    VOID = "void"


class AttemptStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class Invoice(Base):
    __tablename__ = "invoices"

    seq = Column(Integer, primary_key=True, autoincrement=True)   # creation order, used by list cursors
    id = Column(String(128), unique=True, nullable=False, index=True)
    customer_id = Column(String(128), nullable=False)
    currency = Column(String(3), nullable=False)
    amount_minor = Column(BigInteger, nullable=False)
    due_date_iso = Column(String(64), nullable=False)
    status = Column(String(16), nullable=False, default=InvoiceStatus.UNPAID.value)  # unpaid | paid | expired | void
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class PaymentAttempt(Base):
    __tablename__ = "payment_attempts"

    id = Column(String(64), primary_key=True)
    invoice_id = Column(String(128), ForeignKey("invoices.id"), nullable=False, index=True)
    idempotency_key = Column(String(255), nullable=True)
    status = Column(String(16), nullable=False, default=AttemptStatus.PENDING.value)  # pending | confirmed | failed
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class IdempotencyRecord(Base):
    __tablename__ = "idempotency_records"

    invoice_id = Column(String(128), nullable=False)
    idempotency_key = Column(String(255), nullable=False)
    payment_attempt_id = Column(String(64), ForeignKey("payment_attempts.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        PrimaryKeyConstraint("invoice_id", "idempotency_key", name="pk_idempotency_records"),
    )
