from __future__ import annotations

from typing import Set


class ProcessedSet:
    """
    Message ids this agent already resolved (reply found or alert sent).

    Lives only as long as the owning agent; a restart starts empty again.
    Not thread-safe: one sequential scan loop owns it.
    """

    def __init__(self) -> None:
        self._ids: Set[str] = set()

    def contains(self, message_id: str) -> bool:
        return message_id in self._ids

    def mark_processed(self, message_id: str) -> None:
        self._ids.add(message_id)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)
