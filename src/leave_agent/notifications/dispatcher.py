from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from leave_agent.config.settings import (
    CHANNEL_PUSH,
    CHANNEL_WEB,
    AgentConfig,
)
from leave_agent.models import Message, NotificationRecord
from leave_agent.notifications.channels import NotificationChannel
from leave_agent.notifications.desktop import DesktopChannel
from leave_agent.notifications.push import PushChannel, initialize_firebase
from leave_agent.notifications.web import EventStreamChannel

logger = logging.getLogger(__name__)


def leave_request_record(
    message: Message, hours_old: float, recipient_email: Optional[str] = None
) -> NotificationRecord:
    subject = message.subject or "No Subject"
    days_old = f"{hours_old / 24:.1f}"
    return NotificationRecord(
        type="leave_request",
        title="⚠️ Leave Request - No Reply",
        body=f"{subject} ({days_old} days old)",
        data={
            "type": "leave_request",
            "messageId": message.id,
            "subject": subject,
            "emailDate": message.date or "Unknown",
            "hoursOld": f"{hours_old:.1f}",
            "daysOld": days_old,
            "recipientEmail": recipient_email or "",
        },
    )


def summary_record(count: int) -> NotificationRecord:
    if count == 1:
        body = "You have 1 leave request pending reply."
    else:
        body = f"You have {count} leave requests pending replies."
    return NotificationRecord(
        type="summary",
        title="📧 Leave Request Summary",
        body=body,
        data={"type": "summary", "count": str(count)},
    )


def self_test_record(channel_name: str) -> NotificationRecord:
    return NotificationRecord(
        type="test",
        title="✅ Notification Test",
        body=f"{channel_name.capitalize()} notifications are working correctly!",
        data={"type": "test"},
    )


@dataclass
class NotificationDispatcher:
    """Channel-agnostic alert surface used by the agent; never raises."""

    channel: NotificationChannel

    def _dispatch(self, record: NotificationRecord) -> bool:
        try:
            return self.channel.deliver(record)
        except Exception:
            logger.exception("Notification channel %s failed for %s", self.channel.name, record.type)
            return False

    def notify_pending_leave_request(
        self, message: Message, hours_old: float, recipient_email: Optional[str] = None
    ) -> bool:
        return self._dispatch(leave_request_record(message, hours_old, recipient_email))

    def notify_summary(self, count: int) -> bool:
        if count <= 0:
            return True
        return self._dispatch(summary_record(count))

    def notify_test(self) -> bool:
        return self._dispatch(self_test_record(self.channel.name))


def build_channel(config: AgentConfig) -> NotificationChannel:
    """Pick the single channel this deployment uses."""
    if config.notification_channel == CHANNEL_WEB:
        return EventStreamChannel(history_size=config.notification_history_size)

    if config.notification_channel == CHANNEL_PUSH:
        if not config.firebase_service_account_key:
            logger.warning(
                "Firebase service account key not found, falling back to desktop notifications"
            )
            return DesktopChannel()
        try:
            app = initialize_firebase(config.firebase_service_account_key)
        except ValueError as exc:
            # Malformed JSON or certificate.
            logger.error("Failed to initialize Firebase: %s; using desktop notifications", exc)
            return DesktopChannel()
        logger.info("Firebase initialized, using push notifications")
        return PushChannel(app=app)

    return DesktopChannel()


def build_dispatcher(config: AgentConfig) -> NotificationDispatcher:
    return NotificationDispatcher(channel=build_channel(config))
