# fulfillment/services/notification_service.py
from concurrent.futures import Future
from decimal import Decimal

from fulfillment.celery_worker import celery_app, publish
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysyłania powiadomień.
    Używa Celery do asynchronicznego przetwarzania. Publikacja idzie poza
    watkiem requestu, bledy kolejkowania sa logowane i nigdy nie wracaja
    do wywolujacego.
    """

    def notify_order_created(self, order_id: int, user_email: str, total: Decimal) -> Future:
        return publish(send_order_created_task, order_id, user_email, str(total))

    def notify_payment_success(self, order_id: int, user_email: str) -> Future:
        return publish(send_payment_success_task, order_id, user_email)


@celery_app.task(name="fulfillment.services.notification_service.send_order_created_task")
def send_order_created_task(order_id: int, user_email: str, total: str):
    """
    Celery task - wysylka maila jest po stronie zewnetrznego dostawcy.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] {user_email}: Order {order_id} created, total {total}")
    return {"order_id": order_id, "status": "sent"}


@celery_app.task(name="fulfillment.services.notification_service.send_payment_success_task")
def send_payment_success_task(order_id: int, user_email: str):
    logger.info(f"[NOTIFICATION] {user_email}: Payment for order {order_id} received")
    return {"order_id": order_id, "status": "sent"}
