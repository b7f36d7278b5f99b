from flask import Blueprint

activity_bp = Blueprint("activity", __name__, url_prefix="/api/activity")

from . import routes  # noqa: E402, F401
