from datetime import datetime, timezone

from flask import jsonify

from profilekit import __version__
from . import main_bp
from ..utils import endpoint_metrics


@main_bp.route('/', methods=['GET'])
@endpoint_metrics
def home():
    return jsonify({
        "message": "Welcome to the profilekit API!",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), 200


@main_bp.route('/health', methods=['GET'])
@endpoint_metrics
def health_check():
    return jsonify({"success": True, "status": "healthy", "version": __version__}), 200
