import os

# Must be set before the application modules read their settings
os.environ.setdefault("SECRET_KEY", "attendance-test-secret-key-0123456789abcdef")
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from config import IpTrackingSettings
from database import Base, build_engine
from deps import get_db
from Login_module.User.user_model import User
from DailyCode_module.DailyCode_model import DailyCode  # noqa: F401
from EntryExit_module.EntryExit_model import EntryExitRecord  # noqa: F401
from IpTracking_module.IpAudit_model import IpAddressLog  # noqa: F401
import IpTracking_module.retention_job as retention_job


@pytest.fixture()
def engine(tmp_path):
    test_db = tmp_path / "attendance_test.db"
    eng = build_engine(f"sqlite:///{test_db.as_posix()}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine, monkeypatch):
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    # The scheduled job opens its own session
    monkeypatch.setattr(retention_job, "SessionLocal", factory)
    return factory


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def ip_settings():
    return IpTrackingSettings(
        enabled=True,
        privacy_enabled=False,
        anonymize_reports=False,
        audit_logging_enabled=True,
        retention_days=30,
    )


@pytest.fixture()
def make_user(db):
    def _make_user(name="Ayse", assigned_ip_addresses=None, is_admin=False, is_active=True):
        user = User(
            name=name,
            assigned_ip_addresses=assigned_ip_addresses,
            is_admin=is_admin,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def client(session_factory):
    import main

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    main.app.dependency_overrides[get_db] = override_get_db
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()
