# tests/conftest.py
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gymapp import models  # noqa: F401  (registers tables on Base)
from gymapp.clock import get_now
from gymapp.database import Base, get_db
from gymapp.main import app

NOW = datetime(2025, 3, 15, 12, 0, 0)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # a developer .env must not leak a pinned clock or an admin key into tests
    monkeypatch.delenv("DEMO_NOW", raising=False)
    monkeypatch.delenv("ADMIN_API_KEY", raising=False)


@pytest.fixture
def now():
    """The fixed clock every test evaluates against."""
    return NOW


@pytest.fixture
def db_session():
    """A fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db_session, now):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_now] = lambda: now
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_membership(db_session):
    """Insert a membership row directly; plan_tier comes from the plan_name validator."""
    def _make(**kwargs):
        kwargs.setdefault("user_id", "user-1")
        kwargs.setdefault("plan_name", "Premium")
        kwargs.setdefault("status", "active")
        membership = models.Membership(**kwargs)
        db_session.add(membership)
        db_session.commit()
        db_session.refresh(membership)
        return membership

    return _make


@pytest.fixture
def make_trainer(db_session):
    def _make(name="Coach Sam", is_active=True):
        trainer = models.Trainer(name=name, is_active=is_active)
        db_session.add(trainer)
        db_session.commit()
        db_session.refresh(trainer)
        return trainer

    return _make
