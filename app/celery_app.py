"""
InvoiceFlow - Celery Configuration

Celery configuration for background task processing.
Uses Redis as the message broker and result backend.
"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings


redis_url = settings.redis_url

# Create Celery app
celery_app = Celery(
    'invoiceflow',
    broker=redis_url,
    backend=redis_url,
    include=['app.tasks.celery_tasks'],
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',

    timezone='UTC',
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,

    result_expires=86400,  # 24 hours

    task_default_retry_delay=60,
    task_max_retries=3,

    # Beat schedule for periodic tasks
    beat_schedule={
        # Flag overdue invoices every day at 00:30
        'mark-overdue-invoices': {
            'task': 'app.tasks.celery_tasks.mark_overdue_invoices_task',
            'schedule': crontab(hour=0, minute=30),
        },

        # Generate recurring invoices every day at 01:00
        'generate-recurring-invoices': {
            'task': 'app.tasks.celery_tasks.generate_recurring_invoices_task',
            'schedule': crontab(hour=1, minute=0),
        },

        # Downgrade lapsed paid plans every hour
        'expire-plans': {
            'task': 'app.tasks.celery_tasks.expire_plans_task',
            'schedule': crontab(minute=15),
        },
    },
)


celery_app.conf.task_routes = {
    'app.tasks.celery_tasks.*': {'queue': 'default'},
}
