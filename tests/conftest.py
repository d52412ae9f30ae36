"""Pytest fixtures for testing"""

import pytest
from typing import Generator, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from fine_service.api.main import create_app
from fine_service.infrastructure.database.models import Base
from fine_service.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeOffenderLookup:
    """Offender lookup returning a fixed count and recording every call"""

    def __init__(self, count: int = 0, error: Optional[Exception] = None):
        self.count = count
        self.error = error
        self.calls = []

    def count_unpaid_fines(self, offender_id: int, exclude_fine_id: Optional[int] = None) -> int:
        self.calls.append((offender_id, exclude_fine_id))
        if self.error is not None:
            raise self.error
        return self.count


@pytest.fixture
def lookup_factory():
    """Build fake offender lookups: lookup_factory(count=3)"""
    return FakeOffenderLookup


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)
