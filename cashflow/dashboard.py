"""Dashboard: a forecast panel and an upcoming-transactions panel.

The two panels load independently so that one failing leaves the other
intact.  :meth:`DashboardViewModel.refresh` is the way to pick up a change made
elsewhere (for example a transaction added from the shared layout).
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from .client import CashflowClient
from .forecast import ForecastViewModel
from .models import Transaction
from .session import SessionStore
from .settings import SettingsStore
from .state import Resource, load_into
from .transactions import upcoming_preview

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5
RECENT_ERROR = "Failed to load transactions"


class DashboardViewModel:
    def __init__(
        self,
        client: CashflowClient,
        settings: SettingsStore,
        session_store: Optional[SessionStore] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._settings = settings
        self._session_store = session_store
        self._today = today
        self.forecast = ForecastViewModel(
            client,
            session_store,
            forecast_days=settings.settings.forecast_period,
            safe_mode=settings.settings.default_safe_mode,
            today=today,
        )
        self.recent: Resource[tuple[Transaction, ...]] = Resource("recent transactions", empty=())
        self._synced = False

    @property
    def ready(self) -> bool:
        return not self._settings.loading

    @property
    def safe_mode(self) -> bool:
        return self.forecast.safe_mode

    def set_safe_mode(self, enabled: bool) -> bool:
        self._synced = True
        return self.forecast.set_params(self.forecast.forecast_days, enabled)

    def load(self) -> None:
        """Load both panels from the current settings."""

        current = self._settings.settings
        self.forecast.forecast_days = current.forecast_period
        if not self._synced:
            self.forecast.safe_mode = current.default_safe_mode
            self._synced = True
        self.forecast.load()
        self.load_recent()

    def load_recent(self) -> bool:
        return load_into(
            self.recent,
            lambda cancel: tuple(upcoming_preview(self._client.list_transactions(cancel=cancel), self._today(), RECENT_LIMIT)),
            error_message=RECENT_ERROR,
            on_unauthenticated=self._session_store.expire if self._session_store else None,
        )

    def refresh(self) -> None:
        self.load()

    @property
    def recent_transactions(self) -> tuple[Transaction, ...]:
        return self.recent.data or ()

    @property
    def low_balance(self) -> bool:
        """True when the lowest projected day dips under the user's threshold."""

        lowest = self.forecast.lowest_day
        if lowest is None:
            return False
        return lowest.closing_balance < self._settings.settings.low_balance_warning
