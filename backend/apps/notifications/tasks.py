# apps/notifications/tasks.py
import requests
from celery import shared_task
from celery.utils.log import get_task_logger
from django.conf import settings

logger = get_task_logger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    queue='high_priority'
)
def send_push_notification(self, push_token, title, message, data=None):
    """
    Async push sender (Expo push API by default).
    """
    push_url = getattr(settings, "PUSH_PROVIDER_URL", None)
    if not push_url:
        logger.error("Push provider configuration missing")
        return "Config Missing"

    try:
        response = requests.post(
            push_url,
            json={
                "to": push_token,
                "title": title,
                "body": message,
                "data": data or {},
            },
            timeout=getattr(settings, "PUSH_REQUEST_TIMEOUT", 5)
        )
        response.raise_for_status()
        return "Sent"

    except requests.RequestException as e:
        logger.warning(f"Push provider failed: {e}. Retrying...")
        raise self.retry(exc=e)


@shared_task(queue='default')
def fan_out_new_delivery(order_id):
    """
    Tells every available driver that an order is ready for pickup.
    """
    from apps.orders.models import Order
    from .services import NotificationService

    order = Order.objects.filter(pk=order_id).select_related("store").first()
    if order is None:
        logger.warning(f"Broadcast skipped, order {order_id} no longer exists")
        return 0

    return NotificationService.broadcast_new_delivery(order)
