"""
Notification senders.

Responsibility:
    Delivers "reorder alert", "requisition approved/rejected", "PO created"
    and "alert escalated" messages.  Delivery is a side effect that never
    participates in the pipeline's transactions.

Architecture position:
    Kernel > Services.  Callers invoke ``send_best_effort`` only after
    their transaction has committed.

Failure modes:
    - A sender failure is logged as ``notification_failed`` and swallowed
      by ``send_best_effort``; the business operation has already
      succeeded and is not undone.
"""

from __future__ import annotations

import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Any, Protocol, runtime_checkable

from supply_kernel.logging_config import get_logger

logger = get_logger("services.notification")


@dataclass(frozen=True)
class Notification:
    """One outbound message."""

    kind: str
    recipient: str
    subject: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class NotificationSender(Protocol):
    """Anything that can deliver a Notification. May raise on failure."""

    def send(self, notification: Notification) -> None: ...


class LoggingNotificationSender:
    """Writes notifications to the structured log. Default for development."""

    def send(self, notification: Notification) -> None:
        logger.info(
            "notification_sent",
            extra={
                "kind": notification.kind,
                "recipient": notification.recipient,
                "subject": notification.subject,
                "data": notification.data,
            },
        )


class SmtpNotificationSender:
    """Sends notifications as plain-text e-mail."""

    def __init__(self, host: str, port: int, sender: str, timeout: float = 10.0):
        self._host = host
        self._port = port
        self._sender = sender
        self._timeout = timeout

    def send(self, notification: Notification) -> None:
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = notification.recipient
        message["Subject"] = notification.subject
        message.set_content(notification.body)
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
            smtp.send_message(message)


def send_best_effort(sender: NotificationSender | None, notification: Notification) -> bool:
    """
    Deliver ``notification`` and report whether it went out.

    Never raises: delivery problems must not turn a committed operation
    into a reported failure.
    """
    if sender is None or not notification.recipient:
        logger.debug(
            "notification_skipped",
            extra={"kind": notification.kind, "has_sender": sender is not None},
        )
        return False
    try:
        sender.send(notification)
        return True
    except Exception:
        logger.warning(
            "notification_failed",
            extra={"kind": notification.kind, "recipient": notification.recipient},
            exc_info=True,
        )
        return False
