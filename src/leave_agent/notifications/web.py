from __future__ import annotations

import itertools
import json
import logging
from collections import deque
from threading import Lock
from typing import Callable, Deque, Dict, List, Optional

from leave_agent.models import NotificationRecord
from leave_agent.notifications.channels import NotificationChannel

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


def serialize_record(record: NotificationRecord) -> str:
    return json.dumps(record.to_dict(), ensure_ascii=False)


class EventStreamChannel(NotificationChannel):
    """
    Fan-out to browser clients attached over a long-lived event stream.

    Recent records are kept in a bounded ring so a reconnecting client can
    catch up. The ring is in-memory only.
    """

    name = "web"

    def __init__(self, history_size: int = 10):
        if history_size < 1:
            raise ValueError("history_size must be >= 1")
        self._lock = Lock()
        self._listeners: Dict[int, Listener] = {}
        self._ids = itertools.count(1)
        self._history: Deque[NotificationRecord] = deque(maxlen=history_size)

    def attach(self, listener: Listener) -> int:
        with self._lock:
            listener_id = next(self._ids)
            self._listeners[listener_id] = listener
        logger.debug("Event stream listener %d attached", listener_id)
        return listener_id

    def detach(self, listener_id: int) -> None:
        with self._lock:
            self._listeners.pop(listener_id, None)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def recent(self, limit: Optional[int] = None) -> List[NotificationRecord]:
        with self._lock:
            items = list(self._history)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def broadcast(self, record: NotificationRecord) -> int:
        """Write the record to every listener; returns how many accepted it."""
        payload = serialize_record(record)
        with self._lock:
            self._history.append(record)
            listeners = list(self._listeners.items())

        delivered = 0
        for listener_id, listener in listeners:
            try:
                listener(payload)
            except Exception as exc:
                logger.info("Detaching event stream listener %d: %s", listener_id, exc)
                self.detach(listener_id)
                continue
            delivered += 1
        return delivered

    def deliver(self, record: NotificationRecord) -> bool:
        delivered = self.broadcast(record)
        logger.info("Event stream notification sent to %d listener(s)", delivered)
        return True
