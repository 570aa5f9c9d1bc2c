"""
Pytest fixtures for the test suite.

Data-layer tests use an in-memory SQLite engine and a session that rolls back
after each test, so tests do not affect each other. API tests reuse that
session through a ``get_db`` override.
"""
from __future__ import annotations

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


TEST_DB_URL = "sqlite:///:memory:"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from geoscope.db.base import Base
    from geoscope.models import activity, geography, security  # noqa: F401  (populate metadata)

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    The transaction is rolled back so the next test gets a clean state.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def audit_sessions(db_session):
    """
    Separate sessions on the test connection for audit rows.

    The connection already has a transaction open, so their commits stay
    inside it and are rolled back with everything else.
    """
    return sessionmaker(bind=db_session.get_bind(), autocommit=False, autoflush=False, class_=Session)


@pytest.fixture
def seeded(db_session):
    """Demo data set from init_db (``name -> id``)."""
    from geoscope.db.init_db import seed

    ids = seed(db_session)
    db_session.commit()
    return ids


@pytest.fixture
def app(db_session, audit_sessions):
    from geoscope.db.session import get_db
    from geoscope.geo_authz.cache import AreaSetCache
    from geoscope.main import create_app
    from geoscope.security.config import load_security_config
    from geoscope.security.dependencies import get_audit_session_factory
    from geoscope.settings import get_settings

    application = create_app(seed=False)
    application.state.security_config = load_security_config(get_settings().resolved_security_config_path())
    application.state.area_set_cache = AreaSetCache(ttl_seconds=60)

    def _get_db(request: Request):
        authz = getattr(request.state, "authz", None)
        if authz is not None:
            db_session.info["authz"] = authz
        else:
            db_session.info.pop("authz", None)
        yield db_session

    application.dependency_overrides[get_db] = _get_db
    application.dependency_overrides[get_audit_session_factory] = lambda: audit_sessions
    return application


@pytest.fixture
def client(app):
    # Not used as a context manager: lifespan (file DB + seeding) is skipped.
    return TestClient(app)


@pytest.fixture
def auth_header():
    from geoscope.models.security import UserRole
    from geoscope.security.scope_token import issue_scope_token

    def _header(user_id: str, role: UserRole, area_set=None) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_scope_token(user_id, role, area_set)}"}

    return _header
