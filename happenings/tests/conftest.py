"""
Pytest configuration and fixtures.

Provides shared fixtures for:
- A fixed "today" so nothing depends on the wall clock
- Event record factories
- In-memory database sessions
- A TestClient wired to the in-memory database
"""

import os
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ['ENVIRONMENT'] = 'development'
os.environ['HAPPENINGS_TIMEZONE'] = 'America/Denver'
os.environ['LISTING_WINDOW_DAYS'] = '90'
os.environ['ADMIN_API_KEY'] = 'test-admin-key'

from happenings.models import Base, Event, Venue


TODAY = '2026-03-01'  # a Sunday


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def make_event():
    """Factory for plain event records as the engine consumes them."""
    counter = {'next_id': 1}

    def _create(**fields):
        record = {
            'id': counter['next_id'],
            'title': f"Event {counter['next_id']}",
            'event_date': None,
            'day_of_week': None,
            'recurrence_rule': None,
            'start_time': '19:00',
            'end_time': None,
            'venue_id': None,
            'venue_name': None,
            'venue_address': None,
            'custom_location_name': None,
            'cover_image_url': None,
            'host_notes': None,
        }
        counter['next_id'] += 1
        record.update(fields)
        return record
    return _create


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope='function')
def test_db_session(test_db_engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def add_event(test_db_session):
    """Factory persisting Event rows."""
    def _create(**fields):
        fields.setdefault('title', 'Open Mic')
        fields.setdefault('is_published', True)
        fields.setdefault('status', 'active')
        event = Event(**fields)
        test_db_session.add(event)
        test_db_session.commit()
        return event
    return _create


@pytest.fixture
def add_venue(test_db_session):
    """Factory persisting Venue rows."""
    def _create(**fields):
        fields.setdefault('name', 'The Lounge')
        venue = Venue(**fields)
        test_db_session.add(venue)
        test_db_session.commit()
        return venue
    return _create


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def client(test_db_engine):
    """TestClient using the in-memory database and a fixed today."""
    from fastapi.testclient import TestClient

    from happenings.api.app import app
    from happenings.api.dependencies import get_today_key
    from happenings.db.session import get_db

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)

    def _get_test_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_today_key] = lambda: TODAY
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
