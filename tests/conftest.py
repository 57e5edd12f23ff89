"""Global test fixtures and utilities for StepXP tests"""
import os
import pytest
from datetime import datetime, timezone
from hypothesis import settings

from src.db.user_store import UserDocumentStore
from src.gamification.step_progress import StepProgressReducer
from src.services.health_sources import StaticHealthSource


# ============================================================================
# Hypothesis Profiles
# ============================================================================

# No per-example deadline: reducer operations log on every call
settings.register_profile("default", deadline=None, print_blob=True)
settings.register_profile("ci", deadline=None, print_blob=True, max_examples=500)
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


# ============================================================================
# Core Fixtures
# ============================================================================

@pytest.fixture
def reducer():
    """Fresh step progress reducer (zero XP, no steps)"""
    return StepProgressReducer()


@pytest.fixture
def recorded_events(reducer):
    """List that collects every event the reducer emits"""
    events = []
    reducer.subscribe(events.append)
    return events


# ============================================================================
# Collaborator Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "mock-user-123"


@pytest.fixture
def user_store(tmp_path):
    """User document store rooted in a temporary directory"""
    return UserDocumentStore(tmp_path)


@pytest.fixture
def health_source():
    """Static health source with permission granted and zero steps"""
    return StaticHealthSource(steps=0)


@pytest.fixture
def fixed_now():
    """A fixed 'now' for session and leaderboard tests"""
    return datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)
