"""
Pytest configuration and fixtures.

This file provides pytest-specific configuration and fixtures.
For standard test utilities, see tests/__init__.py
"""

import os
import pytest

from tests import make_sqlite_session_factory, dispose_session_factory


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "db: marks tests as requiring PostgreSQL (deselect with '-m \"not db\"')"
    )


@pytest.fixture
def session_factory():
    """Session factory over a fresh SQLite database with all tables created."""
    factory = make_sqlite_session_factory()
    yield factory
    dispose_session_factory(factory)


@pytest.fixture(scope="session")
def test_database():
    """
    Session-scoped fixture that automatically manages the PostgreSQL test database.

    Uses testcontainers to start PostgreSQL before tests and stops it after
    all tests complete. Uses an external database instead if TEST_DATABASE_URL
    is set.
    """
    external_url = os.environ.get("TEST_DATABASE_URL")
    if external_url:
        from tests import check_db_available
        if check_db_available():
            yield external_url
            return
        pytest.skip("External database not available")

    try:
        from testcontainers.postgres import PostgresContainer

        postgres = PostgresContainer(
            image="postgres:16-alpine",
            username="testuser",
            password="testpass",
            dbname="practice_test",
            port=5432
        )
        postgres.start()
    except Exception as e:
        pytest.skip(f"Could not start test database container: {e}")

    db_url = postgres.get_connection_url()

    from sqlalchemy import create_engine
    from database.models import Base
    engine = create_engine(db_url)
    Base.metadata.create_all(engine)
    engine.dispose()

    print(f"\n✓ Test database started: {db_url}")
    yield db_url

    postgres.stop()
    print("\n✓ Test database stopped")


@pytest.fixture(scope="session")
def test_db_url(test_database):
    """Get test database URL."""
    return test_database
