from __future__ import annotations

from datetime import datetime, timezone

import pytest

from leave_agent.models import Message
from leave_agent.pipeline.age import age_hours

NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)


def test_age_is_fractional_hours() -> None:
    message = Message(id="m1", thread_id="t1", internal_date=NOW_MS - 90 * 60 * 1000)

    assert age_hours(message, now=NOW) == pytest.approx(1.5)


def test_unknown_send_time_never_looks_overdue() -> None:
    message = Message(id="m1", thread_id="t1", internal_date=0)

    assert age_hours(message, now=NOW) == 0.0
