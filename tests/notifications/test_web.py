from __future__ import annotations

import json
from typing import List

import pytest

from leave_agent.models import NotificationRecord
from leave_agent.notifications.web import EventStreamChannel


def _record(n: int) -> NotificationRecord:
    return NotificationRecord(type="summary", title=f"t{n}", body=f"b{n}", data={"count": str(n)})


def test_broadcast_reaches_every_listener() -> None:
    channel = EventStreamChannel()
    first: List[str] = []
    second: List[str] = []
    channel.attach(first.append)
    channel.attach(second.append)

    assert channel.deliver(_record(1)) is True

    assert len(first) == len(second) == 1
    payload = json.loads(first[0])
    assert payload["type"] == "summary"
    assert payload["data"] == {"count": "1"}


def test_listener_that_fails_is_detached() -> None:
    channel = EventStreamChannel()
    healthy: List[str] = []

    def broken(_payload: str) -> None:
        raise ConnectionResetError("client went away")

    channel.attach(broken)
    channel.attach(healthy.append)

    assert channel.broadcast(_record(1)) == 1
    assert channel.listener_count == 1
    assert channel.broadcast(_record(2)) == 1
    assert len(healthy) == 2


def test_history_is_a_bounded_ring() -> None:
    channel = EventStreamChannel(history_size=3)

    for n in range(5):
        channel.deliver(_record(n))

    assert [r.title for r in channel.recent()] == ["t2", "t3", "t4"]
    assert [r.title for r in channel.recent(limit=1)] == ["t4"]
    assert channel.recent(limit=0) == []


def test_records_are_kept_without_listeners() -> None:
    channel = EventStreamChannel()

    assert channel.deliver(_record(1)) is True
    assert len(channel.recent()) == 1


def test_detach_stops_delivery() -> None:
    channel = EventStreamChannel()
    seen: List[str] = []
    listener_id = channel.attach(seen.append)

    channel.detach(listener_id)
    channel.broadcast(_record(1))

    assert seen == []


def test_history_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        EventStreamChannel(history_size=0)
