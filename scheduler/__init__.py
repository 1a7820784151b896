# Scheduler module for background tasks

from .notification_jobs import dispatch_notifications_job, start_scheduler, stop_scheduler

__all__ = ["dispatch_notifications_job", "start_scheduler", "stop_scheduler"]
