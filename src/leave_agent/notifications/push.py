"""Firebase Cloud Messaging channel.

Each channel instance owns its recipient registry. Tokens the push service
rejects are pruned before ``send`` returns, so a dead device is tried once.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError

from leave_agent.models import NotificationRecord
from leave_agent.notifications.channels import NotificationChannel

logger = logging.getLogger(__name__)


def _short(token: str) -> str:
    return f"{token[:20]}..."


def initialize_firebase(service_account_key: str) -> firebase_admin.App:
    """Initialize (or reuse) the default Firebase app from a service-account JSON string."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass
    info = json.loads(service_account_key)
    return firebase_admin.initialize_app(credentials.Certificate(info))


class RecipientRegistry:
    def __init__(self, tokens: Iterable[str] = ()) -> None:
        self._tokens: Set[str] = set()
        for token in tokens:
            self.add(token)

    def add(self, token: str) -> bool:
        if not token or not isinstance(token, str):
            return False
        self._tokens.add(token)
        logger.info("Push token registered: %s", _short(token))
        return True

    def remove(self, token: str) -> None:
        self._tokens.discard(token)

    def tokens(self) -> List[str]:
        return sorted(self._tokens)

    def __contains__(self, token: object) -> bool:
        return token in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)


@dataclass(frozen=True)
class RecipientResult:
    token: str
    success: bool
    error: Optional[str] = None


@dataclass
class PushResult:
    sent: bool
    success_count: int = 0
    failure_count: int = 0
    results: List[RecipientResult] = field(default_factory=list)


class PushChannel(NotificationChannel):
    name = "push"

    def __init__(
        self,
        registry: Optional[RecipientRegistry] = None,
        *,
        app: Optional[firebase_admin.App] = None,
        send_multicast: Optional[Callable[[messaging.MulticastMessage], Any]] = None,
    ):
        self.registry = registry if registry is not None else RecipientRegistry()
        self._app = app
        self._send_multicast = send_multicast or self._send_with_firebase

    def _send_with_firebase(self, message: messaging.MulticastMessage) -> messaging.BatchResponse:
        return messaging.send_each_for_multicast(message, app=self._app)

    def send(self, title: str, body: str, data: Optional[Dict[str, str]] = None) -> PushResult:
        tokens = self.registry.tokens()
        if not tokens:
            logger.info("No push tokens registered, skipping notification")
            return PushResult(sent=False)

        payload = {str(k): str(v) for k, v in (data or {}).items()}
        payload.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            data=payload,
        )

        try:
            response = self._send_multicast(message)
        except (FirebaseError, ValueError) as exc:
            logger.error("Failed to send push notification: %s", exc)
            return PushResult(sent=False, failure_count=len(tokens))

        results: List[RecipientResult] = []
        for token, resp in zip(tokens, response.responses):
            if resp.success:
                results.append(RecipientResult(token=token, success=True))
                continue
            error = str(resp.exception) if resp.exception else "unknown error"
            logger.info("Removing invalid push token: %s (%s)", _short(token), error)
            self.registry.remove(token)
            results.append(RecipientResult(token=token, success=False, error=error))

        success_count = sum(1 for r in results if r.success)
        logger.info("Push notification sent to %d device(s)", success_count)
        return PushResult(
            sent=True,
            success_count=success_count,
            failure_count=len(results) - success_count,
            results=results,
        )

    def deliver(self, record: NotificationRecord) -> bool:
        data = dict(record.data)
        data.setdefault("timestamp", record.timestamp)
        result = self.send(record.title, record.body, data)
        return result.sent and result.success_count > 0
