import pytest

from billing.validation import encode_cursor
from tests.conftest import invoice_payload


def assert_error(response, status, code=None):
    assert response.status_code == status
    body = response.json()
    assert set(body) == {"error"}
    assert isinstance(body["error"]["code"], str)
    assert body["error"]["message"]
    if code is not None:
        assert body["error"]["code"] == code


def create_invoice(client, **overrides):
    payload = invoice_payload(**overrides)
    response = client.post("/invoices", json=payload)
    assert response.status_code == 201
    return response.json()


def create_attempt(client, invoice_id, key=None):
    headers = {"Idempotency-Key": key} if key else {}
    return client.post("/payments", json={"invoice_id": invoice_id}, headers=headers)


def confirm(client, attempt_id, outcome=None):
    headers = {"X-Mock-Outcome": outcome} if outcome else {}
    return client.post(f"/payments/{attempt_id}/confirm", headers=headers, content="")


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"status": "ok"}


def test_create_invoice(client):
    payload = invoice_payload(amount_minor=2500)
    response = client.post("/invoices", json=payload)

    assert response.status_code == 201
    body = response.json()
    for field in ("id", "customer_id", "currency", "amount_minor", "due_date_iso"):
        assert body[field] == payload[field]
    assert body["status"] == "unpaid"
    assert body["created_at"].endswith("+00:00")


def test_duplicate_invoice_returns_409(client):
    payload = invoice_payload()
    assert client.post("/invoices", json=payload).status_code == 201
    assert_error(client.post("/invoices", json=payload), 409, "DUPLICATE_ID")


def test_invalid_invoice_returns_400(client):
    response = client.post("/invoices", json={"due_date_iso": "not-a-date", "status": "unpaid"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "due_date_iso" in {d["field"] for d in error["details"]}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"content": "{not json", "headers": {"content-type": "application/json"}},
        {"json": ["inv_1"]},
        {},
    ],
)
def test_unparseable_invoice_body_returns_400(client, kwargs):
    response = client.post("/invoices", **kwargs)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_get_invoice(client):
    invoice = create_invoice(client, amount_minor=1293)
    response = client.get(f"/invoices/{invoice['id']}")

    assert response.status_code == 200
    assert response.json() == invoice


def test_get_missing_invoice_returns_404(client):
    assert_error(client.get("/invoices/inv_missing_123"), 404, "NOT_FOUND")


def test_past_due_invoice_is_still_readable(client):
    invoice = create_invoice(client, due_date_iso="2001-01-01T00:00:00.000Z")
    response = client.get(f"/invoices/{invoice['id']}")
    assert response.status_code == 200
    assert response.json()["status"] in ("unpaid", "paid", "expired", "void")


def test_list_invoices(client):
    created = [create_invoice(client)["id"] for _ in range(7)]

    response = client.get("/invoices", params={"limit": 5})
    assert response.status_code == 200
    body = response.json()
    assert [i["id"] for i in body["items"]] == created[:5]
    assert body["next_cursor"]

    response = client.get("/invoices", params={"limit": 5, "cursor": body["next_cursor"]})
    body = response.json()
    assert [i["id"] for i in body["items"]] == created[5:]
    assert body["next_cursor"] is None


def test_list_invoices_empty(client):
    response = client.get("/invoices", params={"limit": 5})
    assert response.status_code == 200
    assert response.json() == {"items": [], "next_cursor": None}


@pytest.mark.parametrize("params", [{"limit": 0}, {"limit": "abc"}, {"limit": 1000}, {"cursor": "nope"}])
def test_list_invoices_rejects_bad_params(client, params):
    assert_error(client.get("/invoices", params=params), 400, "VALIDATION_ERROR")


def test_create_payment_attempt(client):
    invoice = create_invoice(client, amount_minor=2500)
    response = create_attempt(client, invoice["id"])

    assert response.status_code == 201
    body = response.json()
    assert body["id"]
    assert body["invoice_id"] == invoice["id"]
    assert body["status"] == "pending"


def test_payment_attempt_for_missing_invoice_returns_404(client):
    assert_error(create_attempt(client, "inv_missing_123"), 404, "NOT_FOUND")


def test_payment_attempt_requires_invoice_id(client):
    assert_error(client.post("/payments", json={}), 400, "VALIDATION_ERROR")


def test_idempotency_key_reuses_attempt(client):
    invoice = create_invoice(client, amount_minor=2000)

    first = create_attempt(client, invoice["id"], key="idempo-abc")
    second = create_attempt(client, invoice["id"], key="idempo-abc")

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["invoice_id"] == invoice["id"]


def test_blank_idempotency_key_returns_400(client):
    invoice = create_invoice(client)
    assert_error(create_attempt(client, invoice["id"], key="   "), 400, "VALIDATION_ERROR")


def test_get_payment_attempt(client):
    invoice = create_invoice(client)
    attempt = create_attempt(client, invoice["id"]).json()

    response = client.get(f"/payments/{attempt['id']}")
    assert response.status_code == 200
    assert response.json() == attempt
    assert_error(client.get("/payments/attempt_missing"), 404, "ATTEMPT_NOT_FOUND")


def test_forced_success_confirms_and_pays(client):
    invoice = create_invoice(client, amount_minor=2500)
    attempt_id = create_attempt(client, invoice["id"]).json()["id"]

    response = confirm(client, attempt_id, "success")

    assert response.status_code == 200
    assert response.json()["id"] == attempt_id
    assert response.json()["invoice_id"] == invoice["id"]
    assert response.json()["status"] == "confirmed"
    assert client.get(f"/invoices/{invoice['id']}").json()["status"] == "paid"


def test_forced_failure_leaves_invoice_unpaid(client):
    invoice = create_invoice(client, amount_minor=1293)
    attempt_id = create_attempt(client, invoice["id"]).json()["id"]

    assert_error(confirm(client, attempt_id, "fail"), 402, "PAYMENT_FAILED")
    assert client.get(f"/payments/{attempt_id}").json()["status"] == "failed"
    assert client.get(f"/invoices/{invoice['id']}").json()["status"] == "unpaid"


def test_unknown_forced_outcome_returns_400(client):
    invoice = create_invoice(client, amount_minor=2500)
    attempt_id = create_attempt(client, invoice["id"]).json()["id"]
    assert_error(confirm(client, attempt_id, "perhaps"), 400, "VALIDATION_ERROR")
    assert client.get(f"/payments/{attempt_id}").json()["status"] == "pending"


def test_confirm_missing_attempt_returns_404(client):
    assert_error(confirm(client, "attempt_missing_123", "success"), 404, "ATTEMPT_NOT_FOUND")


def test_paying_a_paid_invoice_is_rejected(client):
    invoice = create_invoice(client, amount_minor=2500)
    attempt_id = create_attempt(client, invoice["id"]).json()["id"]
    confirm(client, attempt_id, "success")

    assert_error(create_attempt(client, invoice["id"]), 409, "INVALID_STATE")


def test_reconfirm_returns_terminal_state(client):
    invoice = create_invoice(client, amount_minor=2500)
    attempt_id = create_attempt(client, invoice["id"]).json()["id"]
    assert confirm(client, attempt_id).status_code == 200

    response = confirm(client, attempt_id, "fail")
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"


@pytest.mark.parametrize(
    "amount_minor, should_succeed",
    [
        (2, True), (3, False), (4, True),
        (102, True), (103, False), (104, True),
        (6, True), (7, False), (8, True),
        (106, True), (107, False), (108, True),
    ],
)
def test_amount_rule_without_forced_outcome(client, amount_minor, should_succeed):
    invoice = create_invoice(client, amount_minor=amount_minor)
    attempt = create_attempt(client, invoice["id"])
    assert attempt.status_code == 201
    attempt_id = attempt.json()["id"]

    response = confirm(client, attempt_id)
    invoice_status = client.get(f"/invoices/{invoice['id']}").json()["status"]

    if should_succeed:
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"
        assert invoice_status == "paid"
    else:
        assert_error(response, 402, "PAYMENT_FAILED")
        assert client.get(f"/payments/{attempt_id}").json()["status"] == "failed"
        assert invoice_status == "unpaid"


def test_invoice_id_with_slash_is_rejected(client):
    response = client.post("/invoices", json=invoice_payload(id="inv/with/slash"))
    assert_error(response, 400, "VALIDATION_ERROR")
    assert response.json()["error"]["details"][0]["field"] == "id"


def test_invoice_id_with_punctuation_round_trips(client):
    invoice = create_invoice(client, id="inv.2030:A-1_b")
    response = client.get(f"/invoices/{invoice['id']}")
    assert response.status_code == 200
    assert response.json()["id"] == "inv.2030:A-1_b"


def test_unknown_route_uses_error_envelope(client):
    assert_error(client.get("/nowhere"), 404, "NOT_FOUND")


def test_wrong_method_uses_error_envelope(client):
    response = client.delete("/invoices")
    assert_error(response, 405, "METHOD_NOT_ALLOWED")
    assert "GET" in response.headers["allow"]


def test_out_of_range_cursor_returns_400(client):
    response = client.get("/invoices", params={"cursor": encode_cursor(10**30)})
    assert_error(response, 400, "VALIDATION_ERROR")
