# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_ALWAYS_EAGER,
)

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAŻNE: Explicite importuj taski, żeby Celery je zarejestrował
celery_app.conf.imports = (
    "storefront.tasks.alerts",
    "storefront.services.notification_service",
)

#powiadomienia to fire-and-forget, bez ponawiania
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
celery_app.conf.task_acks_late = False

# Konfiguracja beat schedule
celery_app.conf.beat_schedule = {
    "report-failed-restocks-every-10-minutes": {
        "task": "storefront.tasks.alerts.report_failed_restocks_task",
        "schedule": 600.0,  # co 10 minut
    },
}

celery_app.conf.timezone = "UTC"
