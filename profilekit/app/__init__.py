import os
import logging
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify, request
from flask_cors import CORS
import redis

from ..config import Config
from .utils import ensure_directories_exist
# Import the global celery instance and the configuration function
from ..celery_app import celery as global_celery_app, configure_celery_app


def _create_redis_client(app):
    if app.config.get("REDIS_URL"):
        return redis.StrictRedis.from_url(app.config["REDIS_URL"], decode_responses=False)
    return redis.StrictRedis(
        host=app.config.get("REDIS_HOST", "localhost"),
        port=app.config.get("REDIS_PORT", 6379),
        db=app.config.get("REDIS_DB", 0),
        password=app.config.get("REDIS_PASSWORD"),  # None means no-auth Redis
        decode_responses=False,
    )


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Resolve project root to make the log folder absolute if it is relative
    project_root = os.path.abspath(
        os.path.join(os.path.dirname(__file__), os.pardir, os.pardir)
    )
    log_dir = app.config.get("LOG_DIR") or "logs"
    if not os.path.isabs(log_dir):
        log_dir = os.path.join(project_root, log_dir)
    app.config["LOG_DIR"] = log_dir

    # Initialize logging
    ensure_directories_exist(app)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            RotatingFileHandler(
                os.path.join(log_dir, "api_server.log"),
                maxBytes=10485760,  # 10MB
                backupCount=5,
            ),
            logging.StreamHandler(),
        ],
    )
    app.logger.setLevel(logging.INFO)
    app.logger.info("profilekit API starting up...")

    # Configure the global Celery instance with the Flask app context
    configure_celery_app(app, global_celery_app)
    app.celery_app = global_celery_app
    app.logger.info("Celery application initialized and configured with Flask app.")

    # Initialize Redis Client
    app.redis_client = None
    if app.config.get("CONNECT_REDIS", True):
        try:
            app.redis_client = _create_redis_client(app)
            app.redis_client.ping()  # Verify connection
            app.logger.info("Successfully connected to Redis.")
        except redis.exceptions.ConnectionError as e_redis:
            app.logger.error(f"Could not connect to Redis: {e_redis}", exc_info=True)
            app.redis_client = None
        except Exception as e_redis_other:
            app.logger.error(
                f"An unexpected error occurred during Redis initialization: {e_redis_other}",
                exc_info=True,
            )
            app.redis_client = None
    else:
        app.logger.info("Redis connection disabled by configuration.")

    # Initialize CORS
    cors_origins = app.config.get("CORS_ORIGINS", [])
    if not cors_origins and cors_origins != "*":
        app.logger.warning(
            "CORS_ORIGINS is not configured or empty, CORS might be restrictive or disabled depending on environment."
        )

    CORS(
        app,
        resources={
            r"/*": {
                "origins": cors_origins,
                "allow_headers": ["Content-Type", "Authorization", "X-User-Id"],
                "supports_credentials": True,
            }
        },
    )
    app.logger.info(f"CORS initialized. Allowed origins: {app.config['CORS_ORIGINS']}")

    # Register blueprints
    from .main import main_bp

    app.register_blueprint(main_bp)

    from .profile import profile_bp

    app.register_blueprint(profile_bp)

    from .activity import activity_bp

    app.register_blueprint(activity_bp)

    app.logger.info("Blueprints registered.")

    # Register global error handlers
    @app.errorhandler(404)
    def not_found_error(error):
        app.logger.warning(f"404 error: {request.path} - {error}")
        return jsonify({"success": False, "error": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        app.logger.warning(f"405 error: {request.method} {request.path} - {error}")
        return jsonify({"success": False, "error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def request_entity_too_large_error(error):
        app.logger.warning(f"413 error: Payload too large at {request.path} - {error}")
        return (
            jsonify(
                {
                    "success": False,
                    "error": f"The request is too large. Maximum allowed size is {app.config['MAX_CONTENT_LENGTH'] / (1024 * 1024)}MB",
                }
            ),
            413,
        )

    @app.errorhandler(Exception)
    def handle_exception(e):
        from werkzeug.exceptions import HTTPException

        if isinstance(e, HTTPException):
            return e
        app.logger.error(f"Unhandled exception: {str(e)}", exc_info=True)
        return (
            jsonify(
                {
                    "success": False,
                    "error": "An unexpected internal server error occurred.",
                }
            ),
            500,
        )

    app.logger.info("Global error handlers registered.")
    app.logger.info(f"profilekit API configured. LOG_DIR: {app.config.get('LOG_DIR')}")

    return app
