import logging

from flask import jsonify, request
from werkzeug.exceptions import BadRequest

from . import profile_bp
from ..services import ProfileService
from ..utils import endpoint_metrics, require_user, service_response

logger = logging.getLogger("profilekit-api.profile")


def _json_object():
    """Returns the request body if it is a JSON object, else None."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


@profile_bp.route("", methods=["GET"])
@endpoint_metrics
@require_user
def get_profile(user_id):
    return service_response(ProfileService.get_profile(user_id))


@profile_bp.route("", methods=["POST"])
@endpoint_metrics
@require_user
def create_profile(user_id):
    data = _json_object() if request.content_length else {}
    if data is None:
        return jsonify({"success": False, "message": "Request body must be a JSON object."}), 400
    return service_response(ProfileService.create_profile(user_id, data))


@profile_bp.route("", methods=["PUT"])
@endpoint_metrics
@require_user
def update_profile(user_id):
    data = _json_object()
    if data is None:
        return jsonify({"success": False, "message": "Request body must be a JSON object."}), 400
    return service_response(ProfileService.update_profile(user_id, data))


@profile_bp.route("", methods=["DELETE"])
@endpoint_metrics
@require_user
def delete_profile(user_id):
    return service_response(ProfileService.delete_profile(user_id))


@profile_bp.route("/section/<section>", methods=["PUT"])
@endpoint_metrics
@require_user
def update_section(user_id, section):
    # Sections may be lists, strings, objects or null; an empty body means null.
    if not request.get_data():
        return service_response(ProfileService.update_section(user_id, section, None))
    try:
        value = request.get_json(force=True)
    except BadRequest:
        logger.warning(f"Invalid JSON body for section '{section}' from user {user_id}")
        return jsonify({"success": False, "message": "Request body must be valid JSON."}), 400
    return service_response(ProfileService.update_section(user_id, section, value))


@profile_bp.route("/completion", methods=["GET"])
@endpoint_metrics
@require_user
def get_completion(user_id):
    return service_response(ProfileService.get_completion(user_id))
