from __future__ import annotations

import logging
import re
import threading
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from leave_agent.config.settings import AgentConfig
from leave_agent.gmail.store import MessageStore
from leave_agent.models import LeaveRequestCandidate, RunResult
from leave_agent.notifications.dispatcher import NotificationDispatcher
from leave_agent.pipeline.classifier import build_query, classify, lookback_days
from leave_agent.pipeline.replies import ReplyResolver
from leave_agent.storage.state import ProcessedSet

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"[\w.-]+@[\w.-]+\.\w+")

ProgressCallback = Callable[[str, Dict[str, Any]], None]


def extract_recipient_email(to_header: Optional[str]) -> Optional[str]:
    """First address-looking token in a To header ("Name <a@b.c>, ...")."""
    if not to_header or "@" not in to_header:
        return None
    match = EMAIL_RE.search(to_header)
    return match.group(0) if match else None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LeaveRequestAgent:
    """
    One scan: find sent leave requests, check each overdue one for a reply,
    alert for the ones without, then send a single summary.

    The processed set belongs to this instance; agents never share state.
    """

    def __init__(
        self,
        store: MessageStore,
        dispatcher: NotificationDispatcher,
        config: Optional[AgentConfig] = None,
        *,
        processed: Optional[ProcessedSet] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.config = config or AgentConfig()
        self.processed = processed if processed is not None else ProcessedSet()
        self._clock = clock

    def _connect(self) -> None:
        # Fakes and pre-authorized stores have nothing to connect.
        connect = getattr(self.store, "connect", None)
        if callable(connect):
            connect()

    def find_candidates(self, now: datetime) -> List[LeaveRequestCandidate]:
        days_back = lookback_days(self.config.reply_timeout_hours)
        query = build_query(self.config.keywords, days_back, now=now)
        logger.info("Searching for leave requests with query: %s", query)
        messages = self.store.search(query, self.config.max_search_results)
        return classify(messages, self.config.keywords, now=now)

    def _needs_alert(self, candidate: LeaveRequestCandidate, resolver: ReplyResolver) -> bool:
        message = candidate.message
        logger.info(
            "Checking: %s | Date: %s | Age: %.1f hours",
            message.subject or "No Subject",
            message.date or "Unknown",
            candidate.hours_old,
        )

        if candidate.hours_old < self.config.reply_timeout_hours:
            # Left unprocessed so a later scan looks at it again.
            logger.info(
                "Still within timeout period (%s hours)", self.config.reply_timeout_hours
            )
            return False

        if resolver.resolve(message):
            logger.info("Reply found for %s - no action needed", message.id)
            self.processed.mark_processed(message.id)
            return False

        logger.warning("No reply found for %s - notification needed", message.id)
        return True

    def _alert(self, candidate: LeaveRequestCandidate) -> None:
        message = candidate.message
        recipient_email = extract_recipient_email(message.to)
        logger.warning(
            "LEAVE REQUEST - NO REPLY RECEIVED | Subject: %s | Sent: %s | Age: %.1f days (%.1f hours)%s",
            message.subject or "No Subject",
            message.date or "Unknown",
            candidate.hours_old / 24,
            candidate.hours_old,
            f" | Recipient: {recipient_email}" if recipient_email else "",
        )
        sent = self.dispatcher.notify_pending_leave_request(
            message, candidate.hours_old, recipient_email
        )
        if not sent:
            logger.error("Notification for %s was not delivered", message.id)
        self.processed.mark_processed(message.id)

    def run_once(self, progress_cb: Optional[ProgressCallback] = None) -> RunResult:
        """
        Execute a single scan and return a machine-readable summary.

        Errors never escape: each one is appended to ``RunResult.errors``.
        """
        def report(step: str, **payload: Any) -> None:
            if progress_cb:
                progress_cb(step, payload)

        result = RunResult()
        now = self._clock()
        logger.info("=" * 60)
        logger.info("Leave Request Agent - %s", now.strftime("%Y-%m-%d %H:%M:%S"))
        logger.info("=" * 60)

        try:
            report("connect", detail="Connecting to mailbox")
            self._connect()

            report("scanning", detail="Searching for leave requests")
            candidates = self.find_candidates(now)
            result.checked_requests = len(candidates)
            logger.info("Found %d leave request(s)", len(candidates))

            report("evaluating", detail=f"Evaluating {len(candidates)} candidate(s)")
            resolver = ReplyResolver(self.store, on_error=result.errors.append)
            pending: List[LeaveRequestCandidate] = []
            for candidate in candidates:
                if self.processed.contains(candidate.id):
                    continue
                try:
                    if self._needs_alert(candidate, resolver):
                        pending.append(candidate)
                except Exception as exc:
                    logger.exception("Failed to evaluate %s", candidate.id)
                    result.errors.append(f"Error evaluating {candidate.id}: {exc}")
            result.pending_requests = len(pending)

            report("notifying", detail=f"Notifying {len(pending)} pending request(s)")
            for candidate in pending:
                try:
                    self._alert(candidate)
                    result.notifications_sent += 1
                except Exception as exc:
                    logger.exception("Failed to notify for %s", candidate.id)
                    result.errors.append(f"Error notifying {candidate.id}: {exc}")

            if pending:
                report("summarizing", detail="Sending summary notification")
                self.dispatcher.notify_summary(len(pending))
        except Exception as exc:
            error_msg = f"Error during agent execution: {exc}"
            logger.exception("%s", error_msg)
            result.errors.append(error_msg)

        self._log_summary(result)
        report("done", detail="Run completed", metrics=asdict(result))
        return result

    def _log_summary(self, result: RunResult) -> None:
        logger.info("=" * 60)
        logger.info("Summary:")
        logger.info("  Checked requests: %d", result.checked_requests)
        logger.info("  Pending requests: %d", result.pending_requests)
        logger.info("  Notifications sent: %d", result.notifications_sent)
        if result.errors:
            logger.info("  Errors: %d", len(result.errors))
        logger.info("=" * 60)

    def run_continuous(
        self,
        interval_hours: Optional[float] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        """Repeat ``run_once`` until ``stop_event`` is set or the process is interrupted."""
        interval = interval_hours or self.config.check_interval_hours
        stop_event = stop_event or threading.Event()

        logger.info("Starting Leave Request Agent in continuous mode...")
        logger.info("Check interval: %s hours", interval)
        logger.info("Reply timeout: %s hours", self.config.reply_timeout_hours)

        try:
            while not stop_event.is_set():
                self.run_once()
                logger.info("Next check in %s hours...", interval)
                if stop_event.wait(interval * 3600):
                    break
        except KeyboardInterrupt:
            logger.info("Agent stopped by user")
            return
        logger.info("Agent stopped")
