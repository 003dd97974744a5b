from __future__ import annotations

import logging
import threading
from dataclasses import asdict
from threading import Lock
from typing import Any, Callable, Dict, Optional

from leave_agent.app.run import build_agent
from leave_agent.config.settings import AgentConfig, load_config
from leave_agent.models import RunResult
from leave_agent.notifications.dispatcher import NotificationDispatcher, build_dispatcher
from leave_agent.pipeline.orchestrator import LeaveRequestAgent

logger = logging.getLogger(__name__)


class AgentService:
    """
    Process-wide holder of the config, dispatcher and agent the API serves.

    Built lazily so importing the app never touches Gmail or Firebase. Scans
    are serialized: the agent's processed set is not thread-safe.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._run_lock = Lock()
        self._config: Optional[AgentConfig] = None
        self._dispatcher: Optional[NotificationDispatcher] = None
        self._agent: Optional[LeaveRequestAgent] = None

    def configure(
        self,
        *,
        config: Optional[AgentConfig] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        agent: Optional[LeaveRequestAgent] = None,
    ) -> None:
        with self._lock:
            self._config = config
            self._dispatcher = dispatcher
            self._agent = agent

    @property
    def config(self) -> AgentConfig:
        with self._lock:
            if self._config is None:
                self._config = load_config()
            return self._config

    @property
    def dispatcher(self) -> NotificationDispatcher:
        config = self.config
        with self._lock:
            if self._dispatcher is None:
                self._dispatcher = build_dispatcher(config)
            return self._dispatcher

    def agent(self) -> LeaveRequestAgent:
        config, dispatcher = self.config, self.dispatcher
        with self._lock:
            if self._agent is None:
                self._agent = build_agent(config, dispatcher)
            return self._agent

    def run_once(
        self, progress_cb: Optional[Callable[[str, Dict[str, Any]], None]] = None
    ) -> Dict[str, Any]:
        agent = self.agent()
        with self._run_lock:
            result: RunResult = agent.run_once(progress_cb=progress_cb)
        return asdict(result)


def scheduler_loop(service: AgentService, stop_event: threading.Event) -> None:
    """Run a scan every SCHEDULE_HOURS until ``stop_event`` is set."""
    try:
        schedule_hours = service.config.schedule_hours
    except ValueError as exc:
        schedule_hours = AgentConfig().schedule_hours
        logger.error("[Scheduler] Invalid configuration (%s); using %s hours", exc, schedule_hours)
    interval_seconds = schedule_hours * 3600
    logger.info("Scheduling automated checks every %s hours", schedule_hours)
    while not stop_event.wait(interval_seconds):
        logger.info("[Scheduler] Running periodic leave check")
        try:
            summary = service.run_once()
        except (RuntimeError, ValueError) as exc:
            # Missing credentials or bad settings: keep the loop alive for the next interval.
            logger.error("[Scheduler] Check failed: %s", exc)
            continue
        logger.info("[Scheduler] Check finished: %s", summary)


agent_service = AgentService()
