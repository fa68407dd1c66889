# dhakacart/celery_worker.py
from celery import Celery

from dhakacart.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "dhakacart",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# Explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "dhakacart.services.notification_service",
)

celery_app.conf.timezone = "UTC"
# publikacja po commit nie moze wisiec na niedostepnym brokerze
celery_app.conf.broker_connection_timeout = 2
celery_app.conf.broker_transport_options = {"max_retries": 1}
