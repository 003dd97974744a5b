from __future__ import annotations

from typing import Any, Dict, List

from leave_agent.models import Message, NotificationRecord
from leave_agent.notifications.desktop import DesktopChannel, format_desktop_message, truncate_subject
from leave_agent.notifications.dispatcher import leave_request_record


class FakeNotify:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, **kwargs: Any) -> None:
        self.calls.append(kwargs)
        if self.error:
            raise self.error


def _alert() -> NotificationRecord:
    message = Message(
        id="m1",
        thread_id="t1",
        subject="Leave Request - John",
        date="Fri, 7 Jun 2024 12:00:00 +0000",
    )
    return leave_request_record(message, 72.0, "hr@example.com")


def test_leave_request_popup_spells_out_details() -> None:
    text = format_desktop_message(_alert())

    assert text.splitlines() == [
        "Leave Request - John",
        "Sent: Fri, 7 Jun 2024 12:00:00 +0000",
        "Age: 3.0 days (72.0 hours)",
        "To: hr@example.com",
        "",
        "⚠ Action Required: Follow up on this leave request",
    ]


def test_deliver_uses_alert_timeout() -> None:
    notify = FakeNotify()

    assert DesktopChannel(notify=notify).deliver(_alert()) is True

    call = notify.calls[0]
    assert call["title"] == "⚠️ Leave Request - No Reply"
    assert call["timeout"] == 10
    assert call["app_name"] == "AI Leave Request Agent"


def test_summary_popup_uses_short_body() -> None:
    notify = FakeNotify()
    record = NotificationRecord(type="summary", title="Summary", body="You have 2 leave requests pending replies.")

    DesktopChannel(notify=notify).deliver(record)

    assert notify.calls[0]["message"] == "You have 2 leave requests pending replies."
    assert notify.calls[0]["timeout"] == 5


def test_missing_desktop_backend_returns_false() -> None:
    notify = FakeNotify(error=NotImplementedError("No usable implementation found!"))

    assert DesktopChannel(notify=notify).deliver(_alert()) is False


def test_long_subjects_are_truncated() -> None:
    subject = "x" * 80

    assert truncate_subject(subject) == "x" * 57 + "..."
    assert truncate_subject("short") == "short"
