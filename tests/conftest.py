import os
from datetime import datetime

# Keep the application's module-level engine off the filesystem
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chairbook.auth import get_or_create_owner
from chairbook.database import Base, get_db
from chairbook.domain.catalog.repository import ServiceRepository
from chairbook.domain.clients.repository import ClientRepository
from chairbook.main import app


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def owner(db):
    return get_or_create_owner(db)


@pytest.fixture
def client_row(db, owner):
    return ClientRepository.create_client(
        db, owner.id, first_name="Ada", last_name="Lovelace", email="ada@example.com"
    )


@pytest.fixture
def service_row(db, owner):
    return ServiceRepository.create_service(
        db, owner.id, name="Haircut", duration_minutes=60, price_cents=3500
    )


@pytest.fixture
def override_db(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def api(override_db):
    # No context manager: the lifespan would create tables on the real engine
    return TestClient(app)


@pytest.fixture
def booking_refs(api):
    """Ids of a client and a service created through the API"""
    client = api.post("/clients", json={"firstName": "Ada", "lastName": "Lovelace"}).json()
    service = api.post("/services", json={"name": "Haircut", "durationMinutes": 60}).json()
    return client["data"]["id"], service["data"]["id"]


def utc(*args) -> datetime:
    """Naive UTC datetime, the storage representation"""
    return datetime(*args)


def iso(value: datetime) -> str:
    return value.isoformat() + "Z"
