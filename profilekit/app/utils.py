import os
import time
import logging
import traceback
from functools import wraps
from flask import request, jsonify

logger = logging.getLogger("profilekit-api.utils")

USER_ID_HEADER = "X-User-Id"


# Decorator for endpoint metrics and logging
def endpoint_metrics(f):
    """Decorator to log endpoint metrics and handle exceptions."""
    @wraps(f)
    def decorated(*args, **kwargs):
        start_time = time.time()
        endpoint = request.path
        method = request.method
        client_ip = request.remote_addr

        logger.info(f"Request received: {method} {endpoint} from {client_ip}")

        try:
            result = f(*args, **kwargs)
            execution_time = (time.time() - start_time) * 1000  # in milliseconds
            logger.info(f"Request completed: {method} {endpoint} in {execution_time:.2f}ms")
            return result
        except Exception as e:
            execution_time = (time.time() - start_time) * 1000
            logger.error(f"Error processing {method} {endpoint} after {execution_time:.2f}ms: {str(e)}")
            logger.error(traceback.format_exc())
            return jsonify({
                "success": False,
                "error": "An internal server error occurred. Please try again later."
            }), 500
    return decorated


def require_user(f):
    """Reject requests without the X-User-Id header set by the gateway."""
    @wraps(f)
    def decorated(*args, **kwargs):
        user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
        if not user_id:
            logger.warning(f"Unauthenticated request: {request.method} {request.path}")
            return jsonify({"success": False, "message": "Not authenticated"}), 401
        return f(user_id, *args, **kwargs)
    return decorated


def service_response(result: dict):
    """Turn a service result dict into a JSON response."""
    body = dict(result)
    status_code = body.pop("status_code", 200)
    return jsonify(body), status_code


def ensure_directories_exist(app):
    """Ensure all required application directories exist."""
    for directory in [app.config['LOG_DIR']]:
        abs_directory_path = os.path.abspath(directory)
        if not os.path.exists(abs_directory_path):
            os.makedirs(abs_directory_path, exist_ok=True)
            logger.info(f"Created directory: {abs_directory_path}")
