from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

# Importing paths loads .env before any getenv below runs.
from leave_agent.config import paths  # noqa: F401


DEFAULT_KEYWORDS = ("leave request", "leave application", "vacation request", "leave")

CHANNEL_DESKTOP = "desktop"
CHANNEL_PUSH = "push"
CHANNEL_WEB = "web"
CHANNELS = (CHANNEL_DESKTOP, CHANNEL_PUSH, CHANNEL_WEB)


@dataclass(frozen=True)
class AgentConfig:
    keywords: FrozenSet[str] = field(default_factory=lambda: frozenset(DEFAULT_KEYWORDS))
    check_interval_hours: int = 24
    reply_timeout_hours: int = 1
    # Interval of the backend scheduler (one scan per authorized mailbox).
    schedule_hours: int = 12
    notification_channel: str = CHANNEL_DESKTOP
    notification_history_size: int = 10
    max_search_results: int = 50
    request_timeout_seconds: int = 60
    firebase_service_account_key: Optional[str] = None


def parse_keywords(raw: Optional[str]) -> FrozenSet[str]:
    """Split a comma separated keyword list, dropping blanks."""
    if not raw:
        return frozenset(DEFAULT_KEYWORDS)
    keywords = {part.strip() for part in raw.split(",") if part.strip()}
    return frozenset(keywords) or frozenset(DEFAULT_KEYWORDS)


def _int_env(key: str, default: int, *, minimum: int = 0) -> int:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {value!r}") from exc
    if parsed < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {parsed}")
    return parsed


def load_config() -> AgentConfig:
    """Build the agent configuration from the environment (and .env)."""
    channel = (os.getenv("NOTIFICATION_CHANNEL") or CHANNEL_DESKTOP).strip().lower()
    if channel not in CHANNELS:
        raise ValueError(
            f"NOTIFICATION_CHANNEL must be one of {', '.join(CHANNELS)}, got {channel!r}"
        )

    return AgentConfig(
        keywords=parse_keywords(os.getenv("LEAVE_REQUEST_KEYWORDS")),
        check_interval_hours=_int_env("CHECK_INTERVAL_HOURS", 24, minimum=1),
        reply_timeout_hours=_int_env("REPLY_TIMEOUT_HOURS", 1),
        schedule_hours=_int_env("SCHEDULE_HOURS", 12, minimum=1),
        notification_channel=channel,
        notification_history_size=_int_env("NOTIFICATION_HISTORY_SIZE", 10, minimum=1),
        max_search_results=_int_env("MAX_SEARCH_RESULTS", 50, minimum=1),
        request_timeout_seconds=_int_env("GMAIL_REQUEST_TIMEOUT_SECONDS", 60, minimum=1),
        firebase_service_account_key=os.getenv("FIREBASE_SERVICE_ACCOUNT_KEY") or None,
    )


def configure_logging(level: Optional[str] = None) -> None:
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
