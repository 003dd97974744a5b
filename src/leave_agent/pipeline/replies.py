"""Reply detection for leave-request threads.

This is a structural heuristic, not a content classifier: a later message
counts as a reply when it comes from someone else, or when it is marked
``Re:`` (self-CC, mailing-list echo). Message bodies are never inspected.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from leave_agent.gmail.store import MessageStore, MessageStoreError
from leave_agent.models import Message

logger = logging.getLogger(__name__)


def is_reply_to(original: Message, candidate: Message) -> bool:
    if candidate.from_email != original.from_email:
        return True
    return (candidate.subject or "").lower().startswith("re:")


def has_reply(original: Message, thread: Sequence[Message]) -> bool:
    """True if the thread holds a genuine reply sent after ``original``."""
    if not original.thread_id:
        return False
    if not thread:
        return False

    # sorted() is stable: equal timestamps keep provider arrival order.
    ordered = sorted(thread, key=lambda m: int(m.internal_date or 0))
    first_id = ordered[0].id
    original_date = int(original.internal_date or 0)

    for message in thread:
        if message.id in (original.id, first_id):
            continue
        if int(message.internal_date or 0) <= original_date:
            continue
        if is_reply_to(original, message):
            return True
    return False


class ReplyResolver:
    """Fetches a candidate's thread and applies ``has_reply``."""

    def __init__(
        self,
        store: MessageStore,
        on_error: Optional[Callable[[str], None]] = None,
    ):
        self._store = store
        self._on_error = on_error

    def resolve(self, original: Message) -> bool:
        if not original.thread_id:
            return False
        try:
            thread = self._store.get_thread(original.thread_id)
        except MessageStoreError as exc:
            # Unknown reply state resolves to "no reply" so the request is not lost.
            logger.warning("Reply check failed for message %s: %s", original.id, exc)
            if self._on_error:
                self._on_error(f"Reply check failed for {original.id}: {exc}")
            return False
        return has_reply(original, thread)
