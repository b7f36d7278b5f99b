import pytest
from flask import Flask


class FakeRedis:
    """Dict-backed stand-in for the handful of Redis commands the service uses."""

    def __init__(self):
        self.store = {}
        self.lists = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = value.encode("utf-8") if isinstance(value, str) else value
        return True

    def lpush(self, key, *values):
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, value.encode("utf-8") if isinstance(value, str) else value)
        return len(items)

    def ltrim(self, key, start, end):
        items = self.lists.get(key, [])
        self.lists[key] = items[start:end + 1 if end != -1 else None]
        return True

    def lrange(self, key, start, end):
        items = self.lists.get(key, [])
        return items[start:end + 1 if end != -1 else None]


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture(autouse=True)
def _app_context():
    """Push a bare app context so mock.patch can inspect the current_app proxy."""
    with Flask("profilekit-tests").app_context():
        yield
