"""Message store adapter.

Turns raw Gmail resources into immutable ``Message`` records and hides the
provider's error types behind ``MessageStoreError`` for callers that need to
tell a failed fetch apart from an empty result.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError

from leave_agent.gmail.client import GmailClient
from leave_agent.models import Message
from leave_agent.parsing.parser import extract_body_from_payload, headers_from_payload

logger = logging.getLogger(__name__)

# Everything a thread read can fail with: API status, socket timeout, transport, token refresh.
FETCH_ERRORS = (HttpError, OSError, httplib2.HttpLib2Error, TransportError, RefreshError)


class MessageStoreError(RuntimeError):
    """A mailbox read failed (network, quota, deleted thread...)."""


class MessageStore(Protocol):
    def search(self, query: str, max_results: int) -> List[Message]:
        ...

    def get_thread(self, thread_id: str) -> List[Message]:
        ...


def message_from_resource(resource: Dict[str, Any]) -> Message:
    """Normalize a Gmail message resource (full or metadata format)."""
    payload = resource.get("payload", {}) or {}
    headers = headers_from_payload(payload)
    return Message(
        id=str(resource.get("id", "")),
        thread_id=resource.get("threadId") or None,
        from_email=headers.get("from", ""),
        to=headers.get("to", ""),
        subject=headers.get("subject", ""),
        date=headers.get("date", ""),
        internal_date=int(resource.get("internalDate") or 0),
        snippet=resource.get("snippet", "") or "",
        body=extract_body_from_payload(payload),
    )


class GmailMessageStore:
    """Read-only view on the authenticated user's mailbox."""

    def __init__(self, client: GmailClient):
        self._client = client

    def connect(self) -> None:
        if self._client.connected:
            return
        self._client.connect()
        try:
            profile = self._client.get_profile()
        except HttpError as exc:
            logger.warning("Connected, but could not read the mailbox profile: %s", exc)
            return
        logger.info("Connected to Gmail as %s", profile.get("emailAddress", "unknown"))

    def search(self, query: str, max_results: int = 50) -> List[Message]:
        try:
            message_ids = self._client.list_messages(query=query, max_results=max_results)
        except HttpError as exc:
            logger.error("Search failed for query %r: %s", query, exc)
            return []

        messages: List[Message] = []
        for mid in message_ids:
            message = self._get_message(mid)
            if message is not None:
                messages.append(message)
        return messages

    def _get_message(self, message_id: str) -> Optional[Message]:
        try:
            return message_from_resource(self._client.get_message(message_id, fmt="full"))
        except HttpError as exc:
            # Message deleted/moved between list and fetch.
            logger.warning("Could not fetch message %s: %s", message_id, exc)
            return None

    def get_thread(self, thread_id: str) -> List[Message]:
        try:
            thread = self._client.get_thread(thread_id)
        except FETCH_ERRORS as exc:
            raise MessageStoreError(f"Could not fetch thread {thread_id}: {exc}") from exc
        # Keep provider order: it is the tie-break for equal timestamps.
        return [message_from_resource(m) for m in thread.get("messages", []) or []]
