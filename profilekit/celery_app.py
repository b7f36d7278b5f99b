from celery import Celery
import os

# Globally instantiated Celery application. Broker and serializer settings
# from the Flask config are applied by configure_celery_app() in the app factory.
celery = Celery(
    "profilekit",
    broker=os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/1"),
    backend=os.environ.get("CELERY_RESULT_BACKEND", "redis://localhost:6379/2"),
    include=["profilekit.tasks"],
)

celery.conf.update(
    task_serializer=os.environ.get("CELERY_TASK_SERIALIZER", "json"),
    result_serializer=os.environ.get("CELERY_RESULT_SERIALIZER", "json"),
    accept_content=os.environ.get("CELERY_ACCEPT_CONTENT", "json").split(","),
    timezone=os.environ.get("CELERY_TIMEZONE", "UTC"),
    broker_connection_retry_on_startup=True,
)


def configure_celery_app(app, celery_instance):
    """
    Configures an existing Celery application instance with settings from a Flask app.
    """
    celery_config = {
        key[len("CELERY_"):].lower(): value
        for key, value in app.config.items()
        if key.startswith("CELERY_")
    }
    celery_config.setdefault("broker_url", celery_instance.conf.broker_url)
    celery_config.setdefault("result_backend", celery_instance.conf.result_backend)
    celery_config.setdefault("include", ["profilekit.tasks"])

    celery_instance.conf.update(celery_config)

    # Subclass Task to automatically push Flask app context
    class ContextTask(celery_instance.Task):
        abstract = True

        def __call__(self, *args, **kwargs):
            with app.app_context():
                return super().__call__(*args, **kwargs)

    celery_instance.Task = ContextTask
    return celery_instance
