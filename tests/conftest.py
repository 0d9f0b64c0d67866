import uuid

import pytest
from fastapi.testclient import TestClient

from billing.database import Base, make_engine, make_session_factory
from billing.main import app as fastapi_app
from billing.routes import get_service
from billing.service import BillingService
import billing.auth


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test_billing.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def TestingSessionLocal(engine):
    return make_session_factory(engine)


@pytest.fixture
def service(TestingSessionLocal):
    return BillingService(TestingSessionLocal, page_default=20, page_max=100)


@pytest.fixture
def client(service):
    fastapi_app.dependency_overrides[get_service] = lambda: service
    # Bypass auth verification for tests
    fastapi_app.dependency_overrides[billing.auth.verify_token] = lambda: True

    with TestClient(fastapi_app) as c:
        yield c

    fastapi_app.dependency_overrides.clear()


def invoice_payload(**overrides):
    suffix = uuid.uuid4().hex[:10]
    payload = {
        "id": f"inv_{suffix}",
        "customer_id": f"c_{suffix}",
        "currency": "AED",
        "amount_minor": 1293,
        "due_date_iso": "2030-01-01T00:00:00.000Z",
        "status": "unpaid",
    }
    payload.update(overrides)
    return payload
