import json
import logging
from datetime import datetime, timezone

import redis
from celery.exceptions import Ignore
from flask import current_app as flask_current_app

from profilekit.celery_app import celery

logger = logging.getLogger("profilekit.tasks")

ACTIVITY_KEY = "activity:{user_id}"

DEFAULT_RETRY_POLICY = {
    "autoretry_for": (redis.exceptions.ConnectionError, ConnectionError),
    "retry_kwargs": {"max_retries": 3, "countdown": 30},
    "retry_backoff": True,
    "retry_jitter": True,
}


@celery.task(name="profilekit.tasks.record_profile_activity", bind=True, **DEFAULT_RETRY_POLICY)
def record_profile_activity(self, user_id: str, action: str, details: dict = None):
    """Append an entry to the user's activity log, newest first."""
    logger.info(f"Task record_profile_activity started. ID: {self.request.id}. User: {user_id}, action: {action}")

    redis_client = flask_current_app.redis_client
    if not redis_client:
        logger.error(f"Redis client not initialized. Cannot record activity. Task ID: {self.request.id}")
        raise Ignore()  # Misconfiguration, retrying won't help

    entry = {
        "userId": user_id,
        "action": action,
        "details": details or {},
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
    key = ACTIVITY_KEY.format(user_id=user_id)
    max_entries = flask_current_app.config.get("ACTIVITY_LOG_MAX_ENTRIES", 100)

    redis_client.lpush(key, json.dumps(entry))
    redis_client.ltrim(key, 0, max_entries - 1)
    logger.info(f"Task record_profile_activity completed. ID: {self.request.id}")
    return entry
