from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional


NotificationType = Literal["leave_request", "summary", "test"]


@dataclass(frozen=True)
class Message:
    id: str
    thread_id: Optional[str]
    from_email: str = ""
    to: str = ""
    subject: str = ""
    # Date header as displayed by the sender's client.
    date: str = ""
    # Provider receive/send time in epoch milliseconds, 0 when unknown.
    internal_date: int = 0
    snippet: str = ""
    body: str = ""


@dataclass(frozen=True)
class LeaveRequestCandidate:
    message: Message
    hours_old: float = 0.0

    @property
    def id(self) -> str:
        return self.message.id


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class NotificationRecord:
    type: NotificationType
    title: str
    body: str
    data: Dict[str, str] = field(default_factory=dict)
    timestamp: str = field(default_factory=_utc_now_iso)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass
class RunResult:
    checked_requests: int = 0
    pending_requests: int = 0
    notifications_sent: int = 0
    errors: List[str] = field(default_factory=list)
