"""Field checks shared by invoice and payment-attempt creation."""

import base64
import binascii
import json
import re
from datetime import datetime
from typing import Any, Optional, Tuple

import pydantic
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

from billing.errors import ValidationError
from billing.models import InvoiceStatus
from billing.outcome import Outcome

MAX_ID_LENGTH = 128
MAX_IDEMPOTENCY_KEY_LENGTH = 255
MAX_AMOUNT_MINOR = 2**63 - 1
MAX_SEQ = 2**63 - 1
ID_PATTERN = r"^[A-Za-z0-9_.:-]+$"

TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2}(\.(\d{3}|\d{6}))?)?(Z|[+-]\d{2}:\d{2})?$"
)


def parse_timestamp(value: str) -> datetime:
    # fromisoformat accepts more forms on newer interpreters; pin the shape first
    if not TIMESTAMP_RE.fullmatch(value):
        raise ValueError(value)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


class InvoiceCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: StrictStr = Field(min_length=1, max_length=MAX_ID_LENGTH, pattern=ID_PATTERN)
    customer_id: StrictStr = Field(min_length=1, max_length=MAX_ID_LENGTH)
    currency: StrictStr = Field(pattern=r"^[A-Za-z]{3}$")
    amount_minor: StrictInt = Field(ge=0, le=MAX_AMOUNT_MINOR)
    due_date_iso: StrictStr
    status: Optional[InvoiceStatus] = None

    @field_validator("id", "customer_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("due_date_iso")
    @classmethod
    def is_timestamp(cls, v: str) -> str:
        try:
            parse_timestamp(v)
        except ValueError:
            raise ValueError("must be an ISO-8601 timestamp")
        return v


class PaymentAttemptCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    invoice_id: StrictStr = Field(min_length=1, max_length=MAX_ID_LENGTH)


def _field_name(loc) -> str:
    return ".".join(str(part) for part in loc) or "body"


def from_pydantic(exc: pydantic.ValidationError) -> ValidationError:
    details = []
    for err in exc.errors():
        reason = err["msg"]
        if reason.startswith("Value error, "):
            reason = reason[len("Value error, "):]
        details.append({"field": _field_name(err["loc"]), "reason": reason})
    return ValidationError(details)


def _validate(model, payload: Any):
    if not isinstance(payload, dict):
        raise ValidationError.single("body", "must be a JSON object")
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        raise from_pydantic(e)


def validate_invoice_payload(payload: Any) -> InvoiceCreate:
    return _validate(InvoiceCreate, payload)


def validate_payment_attempt_payload(payload: Any) -> PaymentAttemptCreate:
    return _validate(PaymentAttemptCreate, payload)


def validate_idempotency_key(key: Optional[str]) -> Optional[str]:
    if key is None:
        return None
    if not key.strip():
        raise ValidationError.single("Idempotency-Key", "must not be blank")
    if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationError.single(
            "Idempotency-Key", f"must be at most {MAX_IDEMPOTENCY_KEY_LENGTH} characters"
        )
    return key


def validate_forced_outcome(value: Optional[str]) -> Optional[Outcome]:
    if value is None:
        return None
    try:
        return Outcome(value.strip().lower())
    except ValueError:
        raise ValidationError.single("X-Mock-Outcome", "must be 'success' or 'fail'")


# List cursors are opaque to callers: base64 of {"after": <seq>}.

def encode_cursor(seq: int) -> str:
    raw = json.dumps({"after": seq}).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_cursor(cursor: str) -> int:
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode()))
        seq = data["after"]
    except (binascii.Error, ValueError, TypeError, KeyError, UnicodeError):
        raise ValidationError.single("cursor", "is not a valid cursor")
    if not isinstance(seq, int) or isinstance(seq, bool) or not 0 <= seq <= MAX_SEQ:
        raise ValidationError.single("cursor", "is not a valid cursor")
    return seq


def validate_page(limit, cursor: Optional[str], default: int, maximum: int) -> Tuple[int, Optional[int]]:
    """Returns (limit, after_seq)."""
    if limit is None or limit == "":
        limit = default
    elif isinstance(limit, bool):
        raise ValidationError.single("limit", "must be an integer")
    elif not isinstance(limit, int):
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            raise ValidationError.single("limit", "must be an integer")
    if not 1 <= limit <= maximum:
        raise ValidationError.single("limit", f"must be between 1 and {maximum}")
    after = decode_cursor(cursor) if cursor else None
    return limit, after
