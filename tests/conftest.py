"""Shared fixtures."""
import pytest

from labelmetrics.config import settings
from labelmetrics.data_stores import SynchronizedStore


@pytest.fixture(autouse=True)
def reset_data_store():
    """Give every test a fresh process-wide store."""
    settings.data_store = SynchronizedStore()
    yield
    settings.data_store = SynchronizedStore()
