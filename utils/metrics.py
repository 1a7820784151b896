# Prometheus metrics for monitoring

from prometheus_client import Counter, Histogram, Info, generate_latest, CONTENT_TYPE_LATEST

# ═══════════════════════════════════════════════════════════════════
# Counters - счётчики событий
# ═══════════════════════════════════════════════════════════════════

# Посещаемость
attendance_recorded_total = Counter(
    'attendance_recorded_total',
    'Attendance records created',
    ['status']  # PRESENT, ABSENT, LATE
)

attendance_rejected_total = Counter(
    'attendance_rejected_total',
    'Attendance submissions rejected by validation',
    ['reason']  # backdated, duplicate, inconsistent, not_found
)

# Баланс
balance_deductions_total = Counter(
    'balance_deductions_total',
    'Lesson price deductions',
    ['result']  # deducted, skipped
)

students_deactivated_total = Counter(
    'students_deactivated_total',
    'Students deactivated by low balance'
)

# Уведомления
notifications_enqueued_total = Counter(
    'notifications_enqueued_total',
    'Notifications put into the queue',
    ['type']
)

notifications_delivered_total = Counter(
    'notifications_delivered_total',
    'Notification delivery attempts',
    ['channel', 'status']  # telegram/sms/broadcast, success/error
)

# Ошибки
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['type', 'module']
)

# ═══════════════════════════════════════════════════════════════════
# Histograms - распределение времени
# ═══════════════════════════════════════════════════════════════════

dispatch_cycle_duration = Histogram(
    'notification_dispatch_cycle_seconds',
    'Time spent draining the notification queue',
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)

api_request_duration = Histogram(
    'api_request_seconds',
    'Time spent on external API requests',
    ['service'],  # telegram, sms
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# ═══════════════════════════════════════════════════════════════════
# Info - метаданные
# ═══════════════════════════════════════════════════════════════════

app_info = Info(
    'tutor_center',
    'Application information'
)


def init_app_info(version: str = "1.0.0"):
    """Инициализировать информацию о приложении."""
    app_info.info({
        'version': version,
        'name': 'tutor-center-notifier',
    })


def get_metrics():
    """Все метрики в формате Prometheus."""
    return generate_latest()


def get_metrics_content_type():
    return CONTENT_TYPE_LATEST
