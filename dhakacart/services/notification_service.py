# dhakacart/services/notification_service.py
from kombu.exceptions import OperationalError

from dhakacart.celery_worker import celery_app
from dhakacart.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysylania powiadomien o zamowieniach.
    Uzywa Celery do asynchronicznego przetwarzania, wolany dopiero po commit.
    """

    @staticmethod
    def send_order_notification(user_id: int, order_id: int, event: str):
        try:
            send_order_notification_task.delay(user_id, order_id, event)
        except OperationalError as e:
            # zamowienie jest juz zapisane, brak brokera nie moze cofnac odpowiedzi
            logger.error(f"Could not enqueue {event} notification for order {order_id}: {e}")


@celery_app.task(name="dhakacart.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: int, event: str):
    """
    Celery task - w prawdziwym systemie wyslalby email/SMS.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_id} {event}")

    return {"user_id": user_id, "order_id": order_id, "event": event, "status": "sent"}
