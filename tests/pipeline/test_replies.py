from __future__ import annotations

from typing import List

from leave_agent.gmail.store import MessageStoreError
from leave_agent.models import Message
from leave_agent.pipeline.replies import ReplyResolver, has_reply

T0 = 1_717_000_000_000
HOUR_MS = 60 * 60 * 1000
ME = "Me <me@example.com>"
BOSS = "Boss <boss@example.com>"

ORIGINAL = Message(
    id="orig",
    thread_id="t1",
    from_email=ME,
    subject="Leave Request - John",
    internal_date=T0,
)


def _later(mid: str, *, hours: float, sender: str = BOSS, subject: str = "Re: Leave Request - John") -> Message:
    return Message(
        id=mid,
        thread_id="t1",
        from_email=sender,
        subject=subject,
        internal_date=int(T0 + hours * HOUR_MS),
    )


def test_thread_with_only_the_original_has_no_reply() -> None:
    assert has_reply(ORIGINAL, [ORIGINAL]) is False


def test_later_message_from_other_sender_is_a_reply() -> None:
    reply = _later("r1", hours=10, subject="Leave Request - John")

    assert has_reply(ORIGINAL, [ORIGINAL, reply]) is True


def test_later_re_marked_message_from_same_sender_is_a_reply() -> None:
    echo = _later("r1", hours=1, sender=ME, subject="RE: Leave Request - John")

    assert has_reply(ORIGINAL, [ORIGINAL, echo]) is True


def test_later_follow_up_from_same_sender_is_not_a_reply() -> None:
    nudge = _later("f1", hours=5, sender=ME, subject="Leave Request - John (reminder)")

    assert has_reply(ORIGINAL, [ORIGINAL, nudge]) is False


def test_messages_not_newer_than_original_are_ignored() -> None:
    earlier = _later("e1", hours=-3)
    same_time = _later("e2", hours=0)

    assert has_reply(ORIGINAL, [earlier, ORIGINAL, same_time]) is False


def test_missing_thread_id_cannot_resolve() -> None:
    orphan = Message(id="orig", thread_id=None, from_email=ME, internal_date=T0)

    assert has_reply(orphan, [orphan, _later("r1", hours=2)]) is False


def test_earliest_thread_message_is_treated_as_the_original() -> None:
    # The candidate carries an older timestamp than anything in the thread,
    # so the earliest thread message stands in for it and is skipped.
    stale = Message(id="other-id", thread_id="t1", from_email=ME, internal_date=T0 - HOUR_MS)
    first = _later("first", hours=1)

    assert has_reply(stale, [first]) is False
    assert has_reply(stale, [first, _later("r2", hours=2)]) is True


def test_equal_timestamps_keep_arrival_order_for_first_message() -> None:
    stale = Message(id="other-id", thread_id="t1", from_email=ME, internal_date=T0 - HOUR_MS)
    a = _later("a", hours=5)
    b = _later("b", hours=5)

    # "a" arrived first so it is the presumed original; "b" still counts.
    assert has_reply(stale, [a, b]) is True
    assert has_reply(stale, [a]) is False


class FakeStore:
    def __init__(self, thread: List[Message], error: Exception | None = None) -> None:
        self.thread = thread
        self.error = error
        self.calls: List[str] = []

    def search(self, query: str, max_results: int) -> List[Message]:
        return []

    def get_thread(self, thread_id: str) -> List[Message]:
        self.calls.append(thread_id)
        if self.error:
            raise self.error
        return list(self.thread)


def test_resolver_fetches_thread_by_id() -> None:
    store = FakeStore([ORIGINAL, _later("r1", hours=3)])

    assert ReplyResolver(store).resolve(ORIGINAL) is True
    assert store.calls == ["t1"]


def test_resolver_reports_fetch_failure_and_resolves_false() -> None:
    errors: List[str] = []
    store = FakeStore([], error=MessageStoreError("quota exceeded"))

    assert ReplyResolver(store, on_error=errors.append).resolve(ORIGINAL) is False
    assert len(errors) == 1
    assert "quota exceeded" in errors[0]


def test_resolver_skips_fetch_without_thread_id() -> None:
    store = FakeStore([])
    orphan = Message(id="orig", thread_id=None)

    assert ReplyResolver(store).resolve(orphan) is False
    assert store.calls == []
