from __future__ import annotations

from abc import ABC, abstractmethod

from leave_agent.models import NotificationRecord


class NotificationChannel(ABC):
    name: str = "channel"

    @abstractmethod
    def deliver(self, record: NotificationRecord) -> bool:
        """
        Deliver one record.

        Returns True when the record was handed off and nothing reported a
        failure. Implementations log failures and return False instead of
        raising.
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
