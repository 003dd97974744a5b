from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from leave_agent.models import Message

MS_PER_HOUR = 1000 * 60 * 60


def age_hours(message: Message, *, now: Optional[datetime] = None) -> float:
    """
    Hours elapsed since the message was sent, unrounded.

    Unknown send times count as brand new so they never look overdue.
    """
    internal_date = int(message.internal_date or 0)
    if internal_date <= 0:
        return 0.0

    now = now or datetime.now(timezone.utc)
    now_ms = now.timestamp() * 1000
    return (now_ms - internal_date) / MS_PER_HOUR
