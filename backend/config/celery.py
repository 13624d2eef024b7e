# config/celery.py
import os
import logging
from celery import Celery
from celery.signals import before_task_publish, task_prerun, task_postrun, task_failure
from kombu import Queue

# Set default settings
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('flowerdrop')
app.config_from_object('django.conf:settings', namespace='CELERY')

# ------------------------------------------------------------------------------
# Queues: push fan-out goes to high_priority, everything else to default
# ------------------------------------------------------------------------------
app.conf.task_queues = (
    Queue('default', routing_key='default'),
    Queue('high_priority', routing_key='high_priority'),
)

app.conf.task_default_queue = 'default'
app.conf.task_default_exchange = 'default'
app.conf.task_default_routing_key = 'default'

app.conf.task_acks_late = True
app.conf.worker_prefetch_multiplier = 1
app.conf.task_reject_on_worker_lost = True
app.conf.broker_connection_retry_on_startup = True

app.conf.task_routes = {
    'apps.notifications.tasks.send_push_notification': {'queue': 'high_priority'},
    'apps.notifications.tasks.fan_out_new_delivery': {'queue': 'default'},
}

app.autodiscover_tasks()

# ------------------------------------------------------------------------------
# TRACING: carry the request id from web to worker
# ------------------------------------------------------------------------------
REQUEST_ID_HEADER = 'X-Request-ID'


@before_task_publish.connect
def transfer_correlation_id(headers=None, **kwargs):
    from apps.core.middleware import get_correlation_id

    request_id = get_correlation_id()
    if request_id and headers is not None:
        headers[REQUEST_ID_HEADER] = request_id


@task_prerun.connect
def restore_correlation_id(task=None, **kwargs):
    from apps.core.middleware import set_correlation_id

    headers = getattr(task.request, 'headers', None) or {}
    request_id = headers.get(REQUEST_ID_HEADER) or getattr(task.request, REQUEST_ID_HEADER, None)
    if request_id:
        task.request.correlation_token = set_correlation_id(request_id)


@task_postrun.connect
def clear_correlation_id(task=None, **kwargs):
    from apps.core.middleware import set_correlation_id

    if getattr(task.request, 'correlation_token', None) is not None:
        set_correlation_id(None)


# ------------------------------------------------------------------------------
# DB HARDENING
# ------------------------------------------------------------------------------
@task_prerun.connect
def close_old_connections(**kwargs):
    """
    Drops stale connections before each task (PgBouncer / container restarts).
    """
    from django.db import close_old_connections
    close_old_connections()


# ------------------------------------------------------------------------------
# DEAD LETTER LOGGING
# ------------------------------------------------------------------------------
logger = logging.getLogger('celery.dlq')


@task_failure.connect
def handle_task_failure(sender=None, task_id=None, exception=None, args=None, kwargs=None, **opts):
    task_name = sender.name if sender else 'unknown_task'
    logger.error(
        f"[DLQ] Task failed permanently: {task_name} (ID: {task_id})",
        extra={
            'metadata': {
                'task_name': task_name,
                'task_id': task_id,
                'exception': str(exception),
            }
        }
    )
