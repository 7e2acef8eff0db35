"""Upcoming due-payment reminders."""
from __future__ import annotations

from typing import Optional

from .client import CashflowClient
from .models import Reminder
from .session import SessionStore
from .state import Resource, load_into

DEFAULT_DAYS = 30


class RemindersViewModel:
    def __init__(self, client: CashflowClient, session_store: Optional[SessionStore] = None) -> None:
        self._client = client
        self._session_store = session_store
        self.resource: Resource[tuple[Reminder, ...]] = Resource("reminders", empty=())

    def load(self, days: int = DEFAULT_DAYS) -> bool:
        return load_into(
            self.resource,
            lambda cancel: tuple(
                sorted(self._client.list_reminders(days, cancel=cancel), key=lambda item: item.days_until_due)
            ),
            params=days,
            error_message="Failed to load reminders",
            on_unauthenticated=self._session_store.expire if self._session_store else None,
        )

    @property
    def reminders(self) -> tuple[Reminder, ...]:
        return self.resource.data or ()

    @property
    def error(self) -> Optional[str]:
        return self.resource.error

    def due_today(self) -> list[Reminder]:
        return [item for item in self.reminders if item.days_until_due <= 0]
