# Notifications: templates, queue and dispatcher

from .dispatcher import CycleStats, NotificationDispatcher
from .queue import (
    QueueError,
    enqueue_for_parents,
    enqueue_notification,
    resubmit_notification,
    send_broadcast,
    send_debtor_reminders,
    send_payment_reminder,
)
from .templates import DEFAULT_TEMPLATES, load_template, render

__all__ = [
    "CycleStats",
    "NotificationDispatcher",
    "QueueError",
    "enqueue_for_parents",
    "enqueue_notification",
    "resubmit_notification",
    "send_broadcast",
    "send_debtor_reminders",
    "send_payment_reminder",
    "DEFAULT_TEMPLATES",
    "load_template",
    "render",
]
