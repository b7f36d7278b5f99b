import json

import pytest

from profilekit.app import create_app
from profilekit.config import TestConfig

USER = {"X-User-Id": "user-1"}


@pytest.fixture(scope="module")
def app():
    return create_app(TestConfig)


@pytest.fixture
def client(app, fake_redis):
    app.redis_client = fake_redis
    return app.test_client()


def test_activity_is_listed_newest_first(client, fake_redis):
    for action in ("profile_created", "section_updated", "profile_updated"):
        fake_redis.lpush("activity:user-1", json.dumps({"action": action}))

    response = client.get("/api/activity?limit=2", headers=USER)
    assert response.status_code == 200
    activities = response.get_json()["data"]["activities"]
    assert [a["action"] for a in activities] == ["profile_updated", "section_updated"]


def test_activity_empty(client):
    response = client.get("/api/activity", headers=USER)
    assert response.get_json()["data"]["activities"] == []


def test_activity_requires_user(client):
    assert client.get("/api/activity").status_code == 401
