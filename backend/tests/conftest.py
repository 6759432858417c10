from __future__ import annotations

import os

# must be set before opsdesk.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import opsdesk.models  # noqa
from opsdesk.core.db import Base, get_db, make_engine
from opsdesk.main import create_app
from opsdesk.models.customer import Customer
from opsdesk.services.change_feed import ChangeFeed
from opsdesk.services.credit_notes import CreditNotes
from opsdesk.services.inflight import InFlightGuard
from opsdesk.services.invoicing import InvoiceBook
from opsdesk.services.order_tracker import OrderTracker
from opsdesk.services.purchasing import Purchasing
from opsdesk.services.record_store import RecordStore
from opsdesk.services.return_tracker import ReturnTracker


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def tick(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def guard():
    return InFlightGuard()


@pytest.fixture
def store(db, feed):
    return RecordStore(db, feed)


@pytest.fixture
def order_tracker(store, guard, clock):
    return OrderTracker(store, guard, clock=clock)


@pytest.fixture
def return_tracker(store, guard, clock):
    return ReturnTracker(store, guard, clock=clock)


@pytest.fixture
def invoice_book(store, clock):
    return InvoiceBook(store, clock=clock)


@pytest.fixture
def purchasing(store, clock):
    return Purchasing(store, clock=clock)


@pytest.fixture
def credit_notes(store, clock):
    return CreditNotes(store, clock=clock)


@pytest.fixture
def new_customer(store):
    def make(**fields):
        data = {"contact_name": "Hana Sato", "company_name": "Sato Interiors", "email": "hana@example.com"}
        data.update(fields)
        return store.insert(Customer(**data))
    return make


@pytest.fixture
def new_order(order_tracker):
    def make(**fields):
        data = {"customer_name": "Amara Okafor", "customer_email": "amara@example.com", "total_amount": 80}
        data.update(fields)
        return order_tracker.create(data)
    return make


@pytest.fixture
def app(session_factory, clock):
    application = create_app(create_tables=False)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = override_get_db
    application.state.clock = clock
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def _session_headers(client: TestClient, email: str) -> dict[str, str]:
    password = "correct-horse-1"
    r = client.post("/auth/sign-up", json={"email": email, "password": password})
    assert r.status_code == 201, r.text
    r = client.post("/auth/sign-in", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def owner_headers(client):
    # the first account on an empty database is the owner
    return _session_headers(client, "owner@example.com")


@pytest.fixture
def viewer_headers(client, owner_headers):
    return _session_headers(client, "viewer@example.com")
