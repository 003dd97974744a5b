from __future__ import annotations

import logging
from typing import Callable, Optional

from plyer import notification as plyer_notification

from leave_agent.models import NotificationRecord
from leave_agent.notifications.channels import NotificationChannel

logger = logging.getLogger(__name__)

APP_NAME = "AI Leave Request Agent"
MAX_SUBJECT_CHARS = 60

# Seconds the popup stays visible, per record type.
TIMEOUTS = {"leave_request": 10, "summary": 5, "test": 5}


def truncate_subject(subject: str, limit: int = MAX_SUBJECT_CHARS) -> str:
    if len(subject) <= limit:
        return subject
    return subject[: limit - 3] + "..."


def format_desktop_message(record: NotificationRecord) -> str:
    """Long-form popup text; leave-request alerts spell out the details."""
    if record.type != "leave_request":
        return record.body

    data = record.data
    lines = [
        truncate_subject(data.get("subject") or "No Subject"),
        f"Sent: {data.get('emailDate') or 'Unknown'}",
        f"Age: {data.get('daysOld')} days ({data.get('hoursOld')} hours)",
    ]
    if data.get("recipientEmail"):
        lines.append(f"To: {data['recipientEmail']}")
    lines.append("")
    lines.append("⚠ Action Required: Follow up on this leave request")
    return "\n".join(lines)


class DesktopChannel(NotificationChannel):
    name = "desktop"

    def __init__(self, notify: Optional[Callable[..., object]] = None, app_name: str = APP_NAME):
        self._notify = notify
        self._app_name = app_name

    def deliver(self, record: NotificationRecord) -> bool:
        try:
            notify = self._notify or plyer_notification.notify
            notify(
                title=record.title,
                message=format_desktop_message(record),
                app_name=self._app_name,
                timeout=TIMEOUTS.get(record.type, 5),
            )
        except Exception as exc:
            # plyer raises NotImplementedError when no desktop backend is available.
            logger.error("Failed to send desktop notification (%s): %s", record.type, exc)
            return False

        logger.info("Desktop notification sent (%s)", record.type)
        return True
