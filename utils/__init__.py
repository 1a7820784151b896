# Utils module

from .retry import api_retry, RetryableHTTPError
from .timezone import local_now, local_today, to_local_date, format_date
from .metrics import (
    attendance_recorded_total,
    attendance_rejected_total,
    balance_deductions_total,
    students_deactivated_total,
    notifications_enqueued_total,
    notifications_delivered_total,
    errors_total,
    dispatch_cycle_duration,
    api_request_duration,
    init_app_info,
)

__all__ = [
    'api_retry',
    'RetryableHTTPError',
    'local_now',
    'local_today',
    'to_local_date',
    'format_date',
    'attendance_recorded_total',
    'attendance_rejected_total',
    'balance_deductions_total',
    'students_deactivated_total',
    'notifications_enqueued_total',
    'notifications_delivered_total',
    'errors_total',
    'dispatch_cycle_duration',
    'api_request_duration',
    'init_app_info',
]
