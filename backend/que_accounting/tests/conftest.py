"""
Root test configuration and fixtures.

Provides:
- An in-memory SQLite engine with working SAVEPOINTs (services and
  provisioning use nested transactions)
- db_session: per-test session whose commits only release a savepoint;
  everything is rolled back when the test ends
- client: FastAPI TestClient bound to db_session
- owner / business: a provisioned, active business and its owner
"""

import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before settings are first read
os.environ.setdefault("ENV", "test")
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256-signing"
os.environ["BOOTSTRAP_ADMIN_EMAIL"] = "root@que.test"
os.environ["BOOTSTRAP_ADMIN_PASSWORD"] = "root-password"
os.environ.pop("DATABASE_URL", None)

from que_accounting.auth.token_codec import TokenCodec  # noqa: E402
from que_accounting.config.settings import get_settings, reset_settings  # noqa: E402
from que_accounting.database.session import get_db_session  # noqa: E402
from que_accounting.db_base import Base  # noqa: E402
from que_accounting.models.business import Business  # noqa: E402
from que_accounting.models.user import User  # noqa: E402
from que_accounting.services.module_catalog_service import seed_permission_catalog  # noqa: E402
from que_accounting.tests.factories import create_user, provision_business  # noqa: E402

import que_accounting.models  # noqa: E402,F401 - registers tables


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "e2e: end-to-end scenarios through the HTTP API")
    config.addinivalue_line("markers", "security: tenant isolation and authorization checks")


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Re-read settings from the environment for every test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(scope="session")
def db_engine():
    """
    SQLite in-memory engine shared by the whole session.

    pysqlite's own transaction handling breaks SAVEPOINT; it is disabled and
    BEGIN is emitted by SQLAlchemy instead.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Create database session with transaction rollback for test isolation.

    session.commit() (called by routes) releases a savepoint; the outer
    transaction is rolled back after the test completes.
    """
    connection = db_engine.connect()
    transaction = connection.begin()

    SessionLocal = sessionmaker(
        bind=connection,
        autoflush=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def catalog(db_session) -> int:
    """Seed the default permission catalog; returns the number of entries."""
    created = seed_permission_catalog(db_session)
    db_session.flush()
    return created


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(get_settings().auth)


@pytest.fixture
def client(db_session) -> Generator[TestClient, None, None]:
    """TestClient whose requests share the test's db_session."""
    from que_accounting.main import app

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db_session] = _override_db
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.pop(get_db_session, None)


@pytest.fixture
def owner(db_session, catalog) -> User:
    return create_user(db_session, "owner@example.com")


@pytest.fixture
def business(db_session, owner) -> Business:
    """Active business owned by `owner`, who holds its Admin membership."""
    return provision_business(db_session, owner)
