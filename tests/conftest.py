import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from courtplan.database import init_db

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so every connection sees the same DB
# 2. One engine per test: records never leak between tests
# 3. init_db() imports every model before create_all()


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    """Provide a test database session"""
    with Session(engine) as session:
        yield session
