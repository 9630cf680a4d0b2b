"""
Shared pytest fixtures and configuration for recordkit tests.

This module provides:
- Auto-marking of tests as unit or integration
- An in-memory SQLite engine with every test record table created
- A ``RecordSession`` and a ``DbService`` bound to that engine
- Small seed-data factories

Usage:
    Fixtures are auto-discovered by pytest:

    def test_something(service, session):
        ...
"""

import sys
from pathlib import Path

import pytest

# Ensure recordkit and the test support package are importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from recordkit.orm import Record, RecordSession, create_engine
from recordkit.service import DbService
from recordkit.settings import RecordkitSettings
from tests._support.models import Category, Item, Owner


# =============================================================================
# Test Markers Configuration
# =============================================================================

_DB_FIXTURES = {"engine", "session", "service", "seeded"}


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests: anything touching the database is an integration test."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if markers.intersection({"unit", "integration"}):
            continue

        if _DB_FIXTURES.intersection(getattr(item, "fixturenames", ())):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_engine("sqlite:///:memory:")
    Record.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    """RecordSession bound to the in-memory engine."""
    with RecordSession(bind=engine) as sess:
        yield sess


@pytest.fixture
def settings():
    return RecordkitSettings(_env_file=None, env="test", bulk_chunk_size=1000)


@pytest.fixture
def service(session, settings):
    """DbService over the test session."""
    return DbService.from_session(session, settings=settings)


@pytest.fixture
def seeded(session):
    """Two owners, two categories and four items, committed."""
    books = Category(id=1, name="Books", type="item")
    misc = Category(id=2, name="Misc", type="other")
    ada = Owner(id=1, name="Ada", email="ada@example.com")
    grace = Owner(id=2, name="Grace")

    session.add_all([books, misc, ada, grace])
    session.flush()

    session.add_all([
        Item(id=1, name="Notes", owner_id=1, category_id=1, status="active"),
        Item(id=2, name="Engine", owner_id=1, category_id=2, status="archived"),
        Item(id=3, name="Compiler", owner_id=2, category_id=1, status="active"),
        Item(id=4, name="Manual", owner_id=2, status="active"),
    ])
    session.commit()
    return session
