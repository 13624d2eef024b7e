# apps/notifications/services.py
import logging
from django.db import transaction

from apps.drivers.services import DriverService
from .models import Notification
from .tasks import fan_out_new_delivery, send_push_notification

logger = logging.getLogger(__name__)


def _enqueue_push(user_id, push_token, title, message, data):
    """
    Publishes one push to the broker. A broker outage costs this push
    only; the history row is already saved.
    """
    try:
        send_push_notification.delay(push_token, title, message, data)
    except Exception as e:
        logger.error(f"[PUSH] Could not queue push for user {user_id}: {e}")


class NotificationService:
    """
    Best-effort fan-out. Nothing here may raise into a state transition;
    callers wrap us, and provider errors only surface inside the Celery task.
    """

    @staticmethod
    def notify(user, title, message, data=None):
        """
        Persist notification history and trigger async push delivery.
        """
        data = data or {}
        Notification.objects.create(user=user, title=title, message=message, data=data)

        if not user.push_token:
            logger.info(f"[PUSH] User {user.id} has no device token, history only")
            return

        args = (user.id, user.push_token, title, message, data)

        # Schedule task only after DB commit
        if transaction.get_connection().in_atomic_block:
            transaction.on_commit(lambda: _enqueue_push(*args))
        else:
            _enqueue_push(*args)

    @staticmethod
    def broadcast(users, title, message, data=None):
        """
        Notifies each user independently; one failing recipient does not
        stop the rest. Returns how many were notified.
        """
        count = 0
        for user in users:
            try:
                NotificationService.notify(user, title, message, data)
            except Exception as e:
                logger.error(f"[PUSH] Broadcast '{title}' skipped user {user.id}: {e}")
                continue
            count += 1
        logger.info(f"[PUSH] Broadcast '{title}' to {count} users")
        return count

    @staticmethod
    def queue_new_delivery_broadcast(order):
        """
        Hands the driver fan-out to a worker so the request only pays for
        one broker publish.
        """
        fan_out_new_delivery.delay(order.id)

    @staticmethod
    def broadcast_new_delivery(order):
        return NotificationService.broadcast(
            DriverService.broadcast_recipients(),
            "New delivery available",
            f"Pickup at {order.pickup_address} ({order.distance_km} km)",
            {"order_id": order.id, "status": order.status},
        )

    @staticmethod
    def notify_store_status(order):
        status_text = order.get_status_display()
        NotificationService.notify(
            order.store.user,
            f"Order #{order.id} {status_text.lower()}",
            f"Delivery for {order.recipient_name} is now {status_text}.",
            {"order_id": order.id, "status": order.status},
        )
