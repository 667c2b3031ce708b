"""
Shared fixtures: an in-memory MongoDB per test and a clean invocation record.
"""

import mongomock
import pytest

from changelog_calls import CALLS


@pytest.fixture
def mongo_client():
    return mongomock.MongoClient()


@pytest.fixture
def database(mongo_client):
    return mongo_client["shop"]


@pytest.fixture(autouse=True)
def reset_calls():
    CALLS.clear()
    yield
    CALLS.clear()
