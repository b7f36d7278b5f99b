import os


class Config:
    """Configuration for the Flask application."""
    DEBUG = os.environ.get("FLASK_DEBUG", "False").lower() in ["true", "1", "t"]
    TESTING = False
    PORT = int(os.environ.get("PORT", 5500))
    HOST = os.environ.get("HOST", "0.0.0.0")

    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    LOG_DIR = os.environ.get('LOG_DIR') or 'logs'
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1 MB, profile documents only

    CORS_ORIGINS_STR = os.environ.get('CORS_ORIGINS') or ''
    if CORS_ORIGINS_STR == "*":
        CORS_ORIGINS = "*"
    elif CORS_ORIGINS_STR:
        CORS_ORIGINS = [origin.strip() for origin in CORS_ORIGINS_STR.split(',')]
    else:
        CORS_ORIGINS = []

    # Redis Configuration
    REDIS_URL = os.environ.get('REDIS_URL')
    REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
    REDIS_PORT = int(os.environ.get('REDIS_PORT', 6379))
    REDIS_DB = int(os.environ.get('REDIS_DB', 0))
    REDIS_PASSWORD = os.environ.get('REDIS_PASSWORD')
    CONNECT_REDIS = True

    # Celery Configuration
    CELERY_BROKER_URL: str = os.environ.get('CELERY_BROKER_URL') or 'redis://localhost:6379/1'
    CELERY_RESULT_BACKEND: str = os.environ.get('CELERY_RESULT_BACKEND') or 'redis://localhost:6379/2'
    CELERY_ACCEPT_CONTENT: list = ['json']
    CELERY_TASK_SERIALIZER: str = 'json'
    CELERY_RESULT_SERIALIZER: str = 'json'
    CELERY_TIMEZONE: str = 'UTC'
    CELERY_TASK_TRACK_STARTED: bool = True
    CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP: bool = True

    # Activity log
    ACTIVITY_LOG_MAX_ENTRIES: int = int(os.environ.get('ACTIVITY_LOG_MAX_ENTRIES', 100))
    RECORD_ACTIVITY: bool = os.environ.get('RECORD_ACTIVITY', 'True').lower() in ('true', '1', 't')

    # Editor / client settings
    AUTOSAVE_DELAY_MS: int = int(os.environ.get('AUTOSAVE_DELAY_MS', 2000))
    PROFILE_API_BASE_URL: str = os.environ.get('PROFILE_API_BASE_URL', 'http://localhost:5500/api')
    REQUEST_TIMEOUT_SECONDS: float = float(os.environ.get('REQUEST_TIMEOUT_SECONDS', 15))


class TestConfig(Config):
    """Configuration used by the test suite."""
    TESTING = True
    DEBUG = False
    LOG_DIR = os.environ.get('TEST_LOG_DIR') or '/tmp/profilekit_test_logs'
    CORS_ORIGINS = ["http://localhost:3000"]
    CELERY_BROKER_URL = 'memory://'
    CELERY_RESULT_BACKEND = 'cache+memory://'
    CELERY_TASK_ALWAYS_EAGER = True
    RECORD_ACTIVITY = False
    # The factory skips connecting to Redis; tests install a fake client.
    CONNECT_REDIS = False
    AUTOSAVE_DELAY_MS = 50
