from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, Response

from billing.auth import verify_token
from billing.database import SessionLocal
from billing.schemas import ErrorResponse, InvoiceOut, InvoicePage, PaymentAttemptOut
from billing.service import BillingService

router = APIRouter()

_service = None


def get_service() -> BillingService:
    global _service
    if _service is None:
        _service = BillingService(SessionLocal)
    return _service


error_responses = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.post("/invoices", status_code=201, response_model=InvoiceOut, responses=error_responses)
def create_invoice(
    payload: Any = Body(None),
    service: BillingService = Depends(get_service),
    auth=Depends(verify_token)
):
    return service.create_invoice(payload)


@router.get("/invoices", response_model=InvoicePage, responses=error_responses)
def list_invoices(
    limit: Optional[str] = Query(None),
    cursor: Optional[str] = Query(None),
    service: BillingService = Depends(get_service),
    auth=Depends(verify_token)
):
    items, next_cursor = service.list_invoices(limit, cursor)
    return InvoicePage(items=[InvoiceOut.model_validate(i) for i in items], next_cursor=next_cursor)


@router.get("/invoices/{invoice_id}", response_model=InvoiceOut, responses=error_responses)
def get_invoice(
    invoice_id: str,
    service: BillingService = Depends(get_service),
    auth=Depends(verify_token)
):
    return service.get_invoice(invoice_id)


@router.post("/payments", status_code=201, response_model=PaymentAttemptOut, responses=error_responses)
def create_payment_attempt(
    response: Response,
    payload: Any = Body(None),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    service: BillingService = Depends(get_service),
    auth=Depends(verify_token)
):
    attempt, created = service.create_payment_attempt(payload, idempotency_key)
    if not created:
        response.status_code = 200
    return attempt


@router.get("/payments/{attempt_id}", response_model=PaymentAttemptOut, responses=error_responses)
def get_payment_attempt(
    attempt_id: str,
    service: BillingService = Depends(get_service),
    auth=Depends(verify_token)
):
    return service.get_payment_attempt(attempt_id)


@router.post(
    "/payments/{attempt_id}/confirm",
    response_model=PaymentAttemptOut,
    responses={**error_responses, 402: {"model": ErrorResponse}},
)
def confirm_payment_attempt(
    attempt_id: str,
    x_mock_outcome: Optional[str] = Header(None),
    service: BillingService = Depends(get_service),
    auth=Depends(verify_token)
):
    return service.confirm_payment_attempt(attempt_id, x_mock_outcome)
