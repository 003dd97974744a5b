# src/leave_agent/app/run.py
from __future__ import annotations

import argparse
import logging
from dataclasses import asdict
from typing import List, Optional

from leave_agent.config.paths import CREDENTIALS_PATH, TOKEN_PATH
from leave_agent.config.settings import AgentConfig, configure_logging, load_config
from leave_agent.gmail.client import GmailClient, GmailClientConfig
from leave_agent.gmail.store import GmailMessageStore
from leave_agent.notifications.dispatcher import NotificationDispatcher, build_dispatcher
from leave_agent.pipeline.orchestrator import LeaveRequestAgent

logger = logging.getLogger(__name__)


def load_gmail_config(config: Optional[AgentConfig] = None) -> GmailClientConfig:
    config = config or AgentConfig()
    if not CREDENTIALS_PATH.exists():
        raise RuntimeError(
            f"Missing Gmail credentials at {CREDENTIALS_PATH}. "
            "Download credentials.json from Google Cloud Console "
            "or configure LEAVE_AGENT_SECRETS_DIR."
        )

    return GmailClientConfig(
        credentials_path=CREDENTIALS_PATH,
        token_path=TOKEN_PATH,
        user_id="me",
        request_timeout_seconds=config.request_timeout_seconds,
    )


def build_agent(
    config: AgentConfig, dispatcher: Optional[NotificationDispatcher] = None
) -> LeaveRequestAgent:
    """Wire an agent against the local Gmail account."""
    client = GmailClient(load_gmail_config(config))
    return LeaveRequestAgent(
        GmailMessageStore(client),
        dispatcher or build_dispatcher(config),
        config,
    )


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="leave-agent",
        description="Alert when a sent leave request has not been answered in time.",
    )
    parser.add_argument(
        "--continuous",
        action="store_true",
        help="Keep running and re-check every CHECK_INTERVAL_HOURS.",
    )
    parser.add_argument(
        "--test-notification",
        action="store_true",
        help="Send a test notification through the configured channel and exit.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging()

    try:
        config = load_config()
        dispatcher = build_dispatcher(config)
        if args.test_notification:
            ok = dispatcher.notify_test()
            logger.info("Notification test %s", "completed" if ok else "failed")
            return 0 if ok else 1
        agent = build_agent(config, dispatcher)
    except (RuntimeError, ValueError) as exc:
        logger.error("Fatal error: %s", exc)
        return 1

    if args.continuous:
        agent.run_continuous()
        return 0

    result = agent.run_once()
    logger.debug("Run result: %s", asdict(result))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
