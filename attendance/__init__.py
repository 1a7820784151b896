# Attendance-driven billing and notifications

from .billing import ChargeResult, charge_for_lesson, resolve_lesson_price, resolve_threshold
from .patterns import detect_performance_streak, notify_absence, process_attendance_patterns
from .recorder import (
    AttendanceRecorder,
    AttendanceSubmission,
    AttendanceValidationError,
    BatchResult,
)

__all__ = [
    "ChargeResult",
    "charge_for_lesson",
    "resolve_lesson_price",
    "resolve_threshold",
    "detect_performance_streak",
    "notify_absence",
    "process_attendance_patterns",
    "AttendanceRecorder",
    "AttendanceSubmission",
    "AttendanceValidationError",
    "BatchResult",
]
