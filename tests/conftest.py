"""
Shared fixtures: SQLite in-memory database with the paywall tables only.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.models.access_settings import AccessSettings  # noqa: F401
from app.models.admin_audit_log import AdminAuditLog  # noqa: F401
from app.models.allowed_user import AllowedUser  # noqa: F401
from app.models.magic_token import MagicToken  # noqa: F401
from app.models.user_unlock import UserUnlock  # noqa: F401


@pytest.fixture
def sqlite_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine):
    return sessionmaker(bind=sqlite_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()
