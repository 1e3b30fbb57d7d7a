from concurrent.futures import Future, ThreadPoolExecutor

from celery import Celery

from fulfillment.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

celery_app = Celery(
    "fulfillment",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAŻNE: Explicite importuj taski, żeby Celery je zarejestrował
celery_app.conf.imports = (
    "fulfillment.services.notification_service",
    "fulfillment.services.audit_service",
    "fulfillment.services.invoice_service",
)

# publikacja ma sie wywrocic od razu gdy broker lezy:
# bez ponawiania publish, bez ponawiania polaczenia (kombu failover),
# bez subskrypcji wyniku w backendzie (jego retry_policy to ~20s)
celery_app.conf.task_publish_retry = False
celery_app.conf.task_ignore_result = True
celery_app.conf.broker_connection_timeout = 2
celery_app.conf.broker_connection_retry = False
celery_app.conf.broker_transport_options = {
    "max_retries": 0,
    "socket_connect_timeout": 2,
    "socket_timeout": 2,
}

celery_app.conf.timezone = "UTC"

# .delay() nigdy nie wykonuje sie w watku requestu
_publisher = ThreadPoolExecutor(max_workers=4, thread_name_prefix="celery-publish")


def _publish(task, args):
    try:
        task.delay(*args)
    except Exception as e:
        logger.error(f"Failed to queue {task.name} {args}: {e}")


def publish(task, *args) -> Future:
    """Fire-and-forget. Zwrocone Future konczy sie po probie publikacji."""
    return _publisher.submit(_publish, task, args)
