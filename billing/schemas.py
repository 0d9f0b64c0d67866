from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_serializer

from billing.models import AttemptStatus, InvoiceStatus


def _utc(value: datetime) -> str:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    currency: str
    amount_minor: int
    due_date_iso: str
    status: InvoiceStatus
    created_at: datetime

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return _utc(value)


class InvoicePage(BaseModel):
    items: List[InvoiceOut]
    next_cursor: Optional[str]


class PaymentAttemptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    invoice_id: str
    idempotency_key: Optional[str]
    status: AttemptStatus
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def serialize_timestamps(self, value: datetime) -> str:
        return _utc(value)


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[List[dict]] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
