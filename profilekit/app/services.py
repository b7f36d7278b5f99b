import json
import logging
from datetime import datetime, timezone

from flask import current_app

from .sections import ALLOWED_SECTIONS, calculate_completion, missing_sections
from profilekit.tasks import record_profile_activity

logger = logging.getLogger("profilekit.services")

PROFILE_KEY = "profile:{user_id}"
ACTIVITY_KEY = "activity:{user_id}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _unavailable():
    logger.error("ProfileService: Redis client not available.")
    return {"success": False, "message": "Profile storage is unavailable.", "status_code": 503}


def _load(redis_client, user_id: str):
    """Returns the stored document, soft-deleted ones included."""
    raw = redis_client.get(PROFILE_KEY.format(user_id=user_id))
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)


def _store(redis_client, user_id: str, profile: dict) -> None:
    redis_client.set(PROFILE_KEY.format(user_id=user_id), json.dumps(profile))


def _load_active(redis_client, user_id: str):
    profile = _load(redis_client, user_id)
    if profile is None or profile.get("deletedAt"):
        return None
    return profile


def _record(user_id: str, action: str, details: dict = None) -> None:
    if not current_app.config.get("RECORD_ACTIVITY", True):
        return
    try:
        record_profile_activity.delay(user_id, action, details or {})
    except Exception as e:
        # Activity is best effort, the profile write already succeeded.
        logger.error(f"ProfileService: Failed to dispatch activity '{action}' for {user_id}: {e}", exc_info=True)


class ProfileService:
    @staticmethod
    def get_profile(user_id: str):
        redis_client = current_app.redis_client
        if not redis_client:
            return _unavailable()

        profile = _load_active(redis_client, user_id)
        if profile is None:
            return {
                "success": True,
                "data": {"profile": None},
                "message": "No profile found. Create one to get started.",
                "status_code": 200,
            }
        return {"success": True, "data": {"profile": profile}, "status_code": 200}

    @staticmethod
    def create_profile(user_id: str, data: dict):
        redis_client = current_app.redis_client
        if not redis_client:
            return _unavailable()

        if _load_active(redis_client, user_id) is not None:
            return {
                "success": False,
                "message": "Profile already exists. Use update endpoint instead.",
                "status_code": 409,
            }

        timestamp = _now()
        profile = dict(data)
        profile.update({"userId": user_id, "createdAt": timestamp, "updatedAt": timestamp, "deletedAt": None})
        profile["completionPercentage"] = calculate_completion(profile)
        _store(redis_client, user_id, profile)
        logger.info(f"Profile created for user: {user_id}")
        _record(user_id, "profile_created")

        return {
            "success": True,
            "message": "Profile created successfully",
            "data": {"profile": profile},
            "status_code": 201,
        }

    @staticmethod
    def update_profile(user_id: str, data: dict):
        redis_client = current_app.redis_client
        if not redis_client:
            return _unavailable()

        profile = _load_active(redis_client, user_id)
        if profile is None:
            return {"success": False, "message": "Profile not found. Create one first.", "status_code": 404}

        protected = {"userId", "createdAt", "deletedAt"}
        profile.update({key: value for key, value in data.items() if key not in protected})
        profile["updatedAt"] = _now()
        profile["completionPercentage"] = calculate_completion(profile)
        _store(redis_client, user_id, profile)
        logger.info(f"Profile updated for user: {user_id}")
        _record(user_id, "profile_updated", {"fields": sorted(data.keys())})

        return {
            "success": True,
            "message": "Profile updated successfully",
            "data": {"profile": profile},
            "status_code": 200,
        }

    @staticmethod
    def update_section(user_id: str, section: str, value):
        redis_client = current_app.redis_client
        if not redis_client:
            return _unavailable()

        if section not in ALLOWED_SECTIONS:
            return {"success": False, "message": f"Invalid section: {section}", "status_code": 400}

        profile = _load_active(redis_client, user_id)
        if profile is None:
            return {"success": False, "message": "Profile not found. Create one first.", "status_code": 404}

        profile[section] = value
        profile["updatedAt"] = _now()
        profile["completionPercentage"] = calculate_completion(profile)
        _store(redis_client, user_id, profile)
        logger.info(f"Section '{section}' updated for user: {user_id}")
        _record(user_id, "section_updated", {"section": section})

        return {
            "success": True,
            "message": f"{section} updated successfully",
            "data": {"profile": profile, "completionPercentage": profile["completionPercentage"]},
            "status_code": 200,
        }

    @staticmethod
    def delete_profile(user_id: str):
        redis_client = current_app.redis_client
        if not redis_client:
            return _unavailable()

        profile = _load_active(redis_client, user_id)
        if profile is None:
            return {"success": False, "message": "Profile not found", "status_code": 404}

        profile["deletedAt"] = _now()
        _store(redis_client, user_id, profile)
        logger.info(f"Profile deleted for user: {user_id}")
        _record(user_id, "profile_deleted")

        return {"success": True, "message": "Profile deleted successfully", "status_code": 200}

    @staticmethod
    def get_completion(user_id: str):
        redis_client = current_app.redis_client
        if not redis_client:
            return _unavailable()

        profile = _load_active(redis_client, user_id)
        if profile is None:
            return {
                "success": True,
                "data": {"completionPercentage": 0, "missingSections": ["All sections"]},
                "status_code": 200,
            }

        percentage = profile.get("completionPercentage", 0)
        return {
            "success": True,
            "data": {
                "completionPercentage": percentage,
                "missingSections": missing_sections(profile),
                "isComplete": percentage == 100,
            },
            "status_code": 200,
        }


class ActivityService:
    @staticmethod
    def list_activity(user_id: str, limit: int = 20):
        redis_client = current_app.redis_client
        if not redis_client:
            return _unavailable()

        limit = max(1, min(limit, current_app.config.get("ACTIVITY_LOG_MAX_ENTRIES", 100)))
        entries = []
        for raw in redis_client.lrange(ACTIVITY_KEY.format(user_id=user_id), 0, limit - 1):
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            entries.append(json.loads(raw))
        return {"success": True, "data": {"activities": entries}, "status_code": 200}
