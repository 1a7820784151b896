# Database module

from .connection import (
    init_db,
    close_db,
    create_engine,
    create_session_factory,
    AsyncSessionLocal,
)
from .models import (
    Base,
    BROADCAST_TELEGRAM_ID,
    Teacher,
    Group,
    Student,
    Parent,
    Attendance,
    Notification,
    Config,
    SalaryType,
    AttendanceStatus,
    PerformanceStatus,
    NotificationType,
    NotificationStatus,
)
from .crud import (
    get_config_value,
    set_config_value,
    get_student,
    get_group,
    count_groups,
    decrement_student_balance,
    deactivate_student,
    get_group_debtors,
    attendance_exists,
    create_attendance,
    get_unreported_performances,
    mark_performance_reported,
    get_all_parent_chat_ids,
    add_notification,
    get_notification,
    get_waiting_notifications,
    transition_notification,
    list_notifications,
)

__all__ = [
    # Connection
    "init_db",
    "close_db",
    "create_engine",
    "create_session_factory",
    "AsyncSessionLocal",
    # Models
    "Base",
    "BROADCAST_TELEGRAM_ID",
    "Teacher",
    "Group",
    "Student",
    "Parent",
    "Attendance",
    "Notification",
    "Config",
    "SalaryType",
    "AttendanceStatus",
    "PerformanceStatus",
    "NotificationType",
    "NotificationStatus",
    # CRUD
    "get_config_value",
    "set_config_value",
    "get_student",
    "get_group",
    "count_groups",
    "decrement_student_balance",
    "deactivate_student",
    "get_group_debtors",
    "attendance_exists",
    "create_attendance",
    "get_unreported_performances",
    "mark_performance_reported",
    "get_all_parent_chat_ids",
    "add_notification",
    "get_notification",
    "get_waiting_notifications",
    "transition_notification",
    "list_notifications",
]
