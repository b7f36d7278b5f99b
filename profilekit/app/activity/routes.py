from flask import request

from . import activity_bp
from ..services import ActivityService
from ..utils import endpoint_metrics, require_user, service_response


@activity_bp.route("", methods=["GET"])
@endpoint_metrics
@require_user
def list_activity(user_id):
    limit = request.args.get("limit", default=20, type=int)
    return service_response(ActivityService.list_activity(user_id, limit))
