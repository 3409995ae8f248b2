"""Kernel services: flush-only writers and side-effect adapters."""

from supply_kernel.services.notification import (
    LoggingNotificationSender,
    Notification,
    NotificationSender,
    SmtpNotificationSender,
    send_best_effort,
)
from supply_kernel.services.sequence_service import (
    DocumentNumberService,
    SequenceCounter,
    SequenceService,
)

__all__ = [
    "DocumentNumberService",
    "LoggingNotificationSender",
    "Notification",
    "NotificationSender",
    "SequenceCounter",
    "SequenceService",
    "SmtpNotificationSender",
    "send_best_effort",
]
