"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest
from django.core.cache import cache


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def reset_order_observer():
    """
    Close every observer subscription after each test.

    The observer is a process-wide singleton; subscriptions left open would
    receive callbacks from later tests.
    """
    yield  # Run the test

    from orders.observers import order_observer

    order_observer.clear()


@pytest.fixture(autouse=True)
def no_retry_delay(settings):
    """Run retried transactions without sleeping between attempts."""
    settings.ORDER_WRITE_RETRY_DELAY = 0


@pytest.fixture(autouse=True)
def clear_cache_after_test():
    """
    Clear cache after each test to prevent cache pollution.
    """
    yield  # Run the test
    cache.clear()  # Clear all cache keys


# ============================================================================
# IMPORT ALL FIXTURES FROM core_backend/tests/fixtures.py
# ============================================================================
from core_backend.tests.fixtures import *  # noqa: E402,F401,F403
