from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

from leave_agent.models import LeaveRequestCandidate, Message
from leave_agent.pipeline.age import age_hours

REPLY_OR_FORWARD_RE = re.compile(r"^(re:|fwd?:|fw:)")

# Window never shorter than a week, and always wider than the reply timeout.
MIN_LOOKBACK_DAYS = 7


def _normalized_keywords(keywords: Iterable[str]) -> List[str]:
    return sorted({k.strip() for k in keywords if k and k.strip()}, key=str.lower)


def lookback_days(reply_timeout_hours: int) -> int:
    return max(MIN_LOOKBACK_DAYS, math.ceil(reply_timeout_hours / 24) + 1)


def build_query(
    keywords: Iterable[str], days_back: int, *, now: Optional[datetime] = None
) -> str:
    """
    Gmail query for leave requests the user sent in the last ``days_back`` days.

    The provider query is only a coarse pre-filter; ``classify`` applies the
    exact subject rules afterwards.
    """
    if days_back < 0:
        raise ValueError("days_back must be >= 0")
    terms = _normalized_keywords(keywords)
    if not terms:
        raise ValueError("At least one keyword is required")

    now = now or datetime.now(timezone.utc)
    since = (now - timedelta(days=days_back)).strftime("%Y/%m/%d")
    subject_clause = " OR ".join(f'subject:"{term}"' for term in terms)
    return f"in:sent ({subject_clause}) after:{since}"


def is_reply_or_forward(subject: Optional[str]) -> bool:
    return bool(REPLY_OR_FORWARD_RE.match((subject or "").strip().lower()))


def matches_keywords(subject: Optional[str], keywords: Iterable[str]) -> bool:
    """True if any keyword is a substring of the subject (case-insensitive)."""
    text = (subject or "").strip().lower()
    if not text:
        return False
    return any(k.lower() in text for k in _normalized_keywords(keywords))


def is_leave_request(message: Message, keywords: Iterable[str]) -> bool:
    if is_reply_or_forward(message.subject):
        return False
    return matches_keywords(message.subject, keywords)


def classify(
    messages: Sequence[Message],
    keywords: Iterable[str],
    *,
    now: Optional[datetime] = None,
) -> List[LeaveRequestCandidate]:
    keyword_list = _normalized_keywords(keywords)
    return [
        LeaveRequestCandidate(message=m, hours_old=age_hours(m, now=now))
        for m in messages
        if is_leave_request(m, keyword_list)
    ]
