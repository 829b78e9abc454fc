from celery import Celery

from homecare.config import get_settings

settings = get_settings()

celery_app = Celery(
    "homecare",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "homecare.tasks.email_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_ignore_result=True,
    task_routes={
        "homecare.tasks.email_tasks.*": {"queue": "notifications.email"},
    },
    # Publishing must never stall a request when the broker is down
    broker_connection_retry_on_startup=False,
    broker_transport_options={"max_retries": 1, "interval_start": 0, "interval_step": 0.2, "interval_max": 0.5},
)
