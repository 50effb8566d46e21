"""Pytest configuration and fixtures for the wedding RSVP backend tests.

- In-memory SQLite database shared through a StaticPool
- `db` session for service-level tests
- `client` TestClient with `get_db` overridden to use the test database
"""

import os
from typing import Generator

# Set environment before the app is imported: no log file, throwaway database
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wedding_rsvp.db.base import Base
from wedding_rsvp.db.session import build_engine, get_db
from wedding_rsvp.main import app
from wedding_rsvp.models.guest import Guest
from wedding_rsvp.models.household import Household

SMITH_CSV = (
    "Name,Email,Household,Child,Teenager\n"
    "John Smith,john@example.com,Smith Family,,\n"
    "Jane Smith,jane@example.com,Smith Family,,\n"
    "Billy Smith,,Smith Family,yes,\n"
)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def query(session_factory):
    """Run a read against the test database in a short-lived session.

    API tests must not keep a session open across requests: the in-memory
    database has a single connection shared by every session.
    """
    def run(fn):
        with session_factory() as session:
            return fn(session)
    return run


@pytest.fixture
def smith_csv() -> str:
    return SMITH_CSV


@pytest.fixture
def make_household(session_factory):
    """Insert a household (and guests by name) directly, returning its id"""
    def make(name: str, code: str, guests=()) -> int:
        with session_factory() as session:
            household = Household(name=name, code=code, guests=[Guest(name=g) for g in guests])
            session.add(household)
            session.commit()
            return household.id
    return make
