"""
Pytest configuration and fixtures.

This file provides pytest-specific configuration and fixtures.
For standard test utilities, see tests/__init__.py
"""

import pytest

from core.cache.match_cache import ResultCache
from tests.fixtures.entity_fixtures import make_project, make_repository, make_student
from tests.mocks.fake_redis import FakeClock, FakeRedis


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "redis: marks tests as requiring a Redis server (deselect with '-m \"not redis\"')"
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock=clock)


@pytest.fixture
def cache(fake_redis, clock):
    """ResultCache backed by the in-memory Redis double."""
    return ResultCache(ttl_seconds=3600, clock=clock, client=fake_redis)


@pytest.fixture
def student():
    return make_student()


@pytest.fixture
def project():
    return make_project()


@pytest.fixture
def repository():
    return make_repository()
