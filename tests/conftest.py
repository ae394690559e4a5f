"""
Shared pytest fixtures and configuration for Seekset tests.

This module provides common fixtures used across unit and integration tests,
including an in-memory SQLite database seeded with users and scoped settings
with a signing secret.
"""

from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine, insert
from sqlalchemy.engine import Connection

from seekset import Settings, TableOptions, using_settings
from tests.models import USERS_DATA, Base, Item, User

TEST_SECRET = "some-secret"


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests without a database")
    config.addinivalue_line("markers", "integration: Integration tests against in-memory SQLite")


@pytest.fixture(autouse=True)
def test_settings() -> Iterator[Settings]:
    """Scopes settings with a signing secret and no token expiration to every test."""
    settings = Settings(secret=TEST_SECRET, token_expires_in=None)
    with using_settings(settings):
        yield settings


@pytest.fixture
def users_options() -> TableOptions:
    """Schema descriptor of the users table."""
    return TableOptions.from_source(User)


@pytest.fixture
def engine():
    """
    Creates an in-memory SQLite engine with the test schema.

    All connections share one database for the lifetime of the engine.
    """
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def connection(engine) -> Iterator[Connection]:
    """Connection to a database seeded with the users and items test data."""
    with engine.begin() as conn:
        conn.execute(insert(User.__table__), USERS_DATA)
        conn.execute(
            insert(Item.__table__),
            [{"name": name} for name in ["car", "ball", "doll"]] + [{"name": "lego"}] * 10,
        )

    with engine.connect() as conn:
        yield conn
