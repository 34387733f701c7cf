from table_assistant.scheduling.notification_scheduler import VacateNotificationScheduler

__all__ = ["VacateNotificationScheduler"]
