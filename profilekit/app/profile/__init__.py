from flask import Blueprint

profile_bp = Blueprint("profile", __name__, url_prefix="/api/profile")

from . import routes  # noqa: E402, F401
