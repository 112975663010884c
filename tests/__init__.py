#!/usr/bin/env python3
"""
Test suite configuration and utilities.

All tests can be run with standard Python tools:

    # Run all tests (unit + Redis if available)
    python -m pytest tests/ -v

    # Run only unit tests (no Redis required)
    python -m pytest tests/ -v -m "not redis"

    # Run only Redis integration tests
    python -m pytest tests/ -v -m "redis"

Redis Setup:
    Integration tests use TEST_REDIS_URL (default redis://localhost:6379/15)
    and are skipped when no server answers:

    docker run -d -p 6379:6379 redis:7
"""

import os

# Redis configuration
TEST_REDIS_URL = os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/15")


def check_redis_available() -> bool:
    """Check if the test Redis server answers PING."""
    try:
        from redis import Redis
        client = Redis.from_url(TEST_REDIS_URL, socket_connect_timeout=1, socket_timeout=1)
        return bool(client.ping())
    except Exception:
        return False
