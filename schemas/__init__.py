# Pydantic schemas for API validation
from .attendance import (
    AttendanceItem,
    AttendanceBatch,
    AttendanceOut,
    AttendanceErrorOut,
    BatchOut,
)
from .notification import (
    NotificationCreate,
    BroadcastCreate,
    PaymentReminderCreate,
    NotificationOut,
    NotificationPage,
    ConfigSet,
)

__all__ = [
    # Attendance
    "AttendanceItem",
    "AttendanceBatch",
    "AttendanceOut",
    "AttendanceErrorOut",
    "BatchOut",
    # Notifications
    "NotificationCreate",
    "BroadcastCreate",
    "PaymentReminderCreate",
    "NotificationOut",
    "NotificationPage",
    "ConfigSet",
]
