"""Shared fixtures: in-memory SQLite database, API client and test factories."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_PER_MINUTE"] = "10000"
os.environ["RATE_LIMIT_PER_HOUR"] = "100000"

import pytest
from fastapi.testclient import TestClient

from app.database import Base, SessionLocal, engine, init_db
from app.main import app
from app.models import PlacementTest
from app.utils.rate_limiter import rate_limiter

from factories import STANDARD_ASSIGNMENTS, TEACHER_ID, standard_questions


@pytest.fixture(autouse=True)
def database():
    init_db()
    rate_limiter.reset()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_test(db_session):
    """Insert a placement test directly"""

    def _make(
        questions=None,
        module_assignments=None,
        status="published",
        teacher_id=TEACHER_ID,
        title="Japanese Placement",
    ):
        test = PlacementTest(
            title=title,
            status=status,
            questions=standard_questions() if questions is None else questions,
            module_assignments=STANDARD_ASSIGNMENTS if module_assignments is None else module_assignments,
            created_by=teacher_id,
        )
        db_session.add(test)
        db_session.commit()
        db_session.refresh(test)
        return test

    return _make
