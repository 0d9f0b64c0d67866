from typing import List, Optional


class BillingError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(BillingError):
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, details: List[dict], message: Optional[str] = None):
        self.details = details
        if message is None:
            message = "; ".join(f"{d['field']}: {d['reason']}" for d in details) or "Invalid request"
        super().__init__(message)

    @classmethod
    def single(cls, field: str, reason: str) -> "ValidationError":
        return cls([{"field": field, "reason": reason}])

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["details"] = self.details
        return body


class UnauthorizedError(BillingError):
    code = "UNAUTHORIZED"
    status_code = 401


class NotFoundError(BillingError):
    code = "NOT_FOUND"
    status_code = 404


class InvoiceNotFoundError(NotFoundError):
    def __init__(self, invoice_id: str):
        super().__init__(f"Invoice {invoice_id!r} not found")
        self.invoice_id = invoice_id


class AttemptNotFoundError(NotFoundError):
    code = "ATTEMPT_NOT_FOUND"

    def __init__(self, attempt_id: str):
        super().__init__(f"Payment attempt {attempt_id!r} not found")
        self.attempt_id = attempt_id


class DuplicateInvoiceError(BillingError):
    code = "DUPLICATE_ID"
    status_code = 409

    def __init__(self, invoice_id: str):
        super().__init__(f"Invoice {invoice_id!r} already exists")
        self.invoice_id = invoice_id


class InvalidStateError(BillingError):
    code = "INVALID_STATE"
    status_code = 409


class PaymentFailedError(BillingError):
    """The confirmation ran and the payment was declined; the attempt is stored as failed."""

    code = "PAYMENT_FAILED"
    status_code = 402

    def __init__(self, attempt):
        super().__init__(f"Payment attempt {attempt.id!r} was declined")
        self.attempt = attempt
