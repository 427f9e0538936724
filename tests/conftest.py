from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from timeboxing.core.auth import ensure_user_principal
from timeboxing.db.base import Base
from timeboxing.db.dependencies import get_db_session
import timeboxing.models.entities  # noqa: F401
from timeboxing.main import create_app

ADMIN_SUBJECT = "subject-admin"
ADMIN_EMAIL = "admin@test.local"


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(
    *,
    subject: str = ADMIN_SUBJECT,
    email: str = ADMIN_EMAIL,
    display_name: str = "Admin",
) -> dict[str, str]:
    return {
        "X-AUTH-SUBJECT": subject,
        "X-AUTH-EMAIL": email,
        "X-AUTH-DISPLAY-NAME": display_name,
    }


@pytest.fixture()
def admin_headers(db_session: Session) -> dict[str, str]:
    ensure_user_principal(db_session, subject=ADMIN_SUBJECT, email=ADMIN_EMAIL, display_name="Admin", is_admin=True)
    return auth_headers()
