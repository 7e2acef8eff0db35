"""Forecast view-model and the pure helpers the dashboard shares with it."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Optional, Sequence

from dateutil.relativedelta import relativedelta

from .client import CashflowClient
from .errors import ValidationError
from .models import BankHoldSummary, DailyBreakdown, ForecastData, ForecastWarning, TransactionSummary
from .session import SessionStore
from .state import Resource, load_into

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load forecast"
UNTAGGED = "Untagged"
FIXED_PERIODS = (7, 14, 30, 60, 90, 120, 180, 365)


@dataclass(frozen=True)
class TagGroup:
    tag_name: str
    transactions: tuple[TransactionSummary, ...]
    total: float


@dataclass(frozen=True)
class ForecastOption:
    value: int
    label: str
    is_default: bool = False


# ----------------------------------------------------------------------
# Pure helpers
# ----------------------------------------------------------------------
def display_balance(forecast: ForecastData) -> float:
    """Return the balance to show as "current".

    Day 0's closing balance wins, except when it is zero while the opening
    balance is positive: the backend has been seen to leave day 0 unpopulated,
    so the opening balance is shown instead.
    """

    opening = forecast.starting_balance
    if not forecast.daily_breakdown:
        return opening
    closing = forecast.daily_breakdown[0].closing_balance
    if closing == 0 and opening > 0:
        return opening
    return closing


def group_by_tag(transactions: Sequence[TransactionSummary]) -> tuple[TagGroup, ...]:
    """Group by first tag name, alphabetically, with a subtotal per group."""

    buckets: dict[str, list[TransactionSummary]] = {}
    for tx in transactions:
        name = tx.tag_names[0] if tx.tag_names else UNTAGGED
        buckets.setdefault(name, []).append(tx)
    return tuple(
        TagGroup(name, tuple(items), sum(item.amount for item in items))
        for name, items in sorted(buckets.items())
    )


class TagGroupMemo:
    """Recompute :func:`group_by_tag` only when handed a different list object."""

    def __init__(self) -> None:
        self._source: Optional[Sequence[TransactionSummary]] = None
        self._result: tuple[TagGroup, ...] = ()

    def __call__(self, transactions: Sequence[TransactionSummary]) -> tuple[TagGroup, ...]:
        if transactions is not self._source:
            self._source = transactions
            self._result = group_by_tag(transactions)
        return self._result


def lowest_balance_day(breakdown: Sequence[DailyBreakdown]) -> Optional[DailyBreakdown]:
    if not breakdown:
        return None
    return min(breakdown, key=lambda day: day.closing_balance)


def total_hold(summaries: Sequence[BankHoldSummary]) -> float:
    return sum(item.minimum_hold for item in summaries)


def forecast_options(today: date) -> list[ForecastOption]:
    """Current month plus the next twelve, then the fixed day counts.

    Month options count from ``today`` to the last day of that month,
    inclusive of both ends.
    """

    options = []
    first_of_month = today.replace(day=1)
    for offset in range(13):
        start = first_of_month + relativedelta(months=offset)
        month_end = start + relativedelta(months=1) - timedelta(days=1)
        days = (month_end - today).days + 1
        month_year = start.strftime("%b %Y")
        if offset == 0:
            label = f"Current Month ({month_year})"
        elif offset == 1:
            label = f"Next Month ({month_year})"
        else:
            label = month_year
        options.append(ForecastOption(days, label, is_default=offset == 0))
    options.extend(ForecastOption(days, f"{days} days") for days in FIXED_PERIODS)
    return options


def default_forecast_days(today: date) -> int:
    return forecast_options(today)[0].value


# ----------------------------------------------------------------------
# View-model
# ----------------------------------------------------------------------
class ForecastViewModel:
    """Requests a projection for the current parameters and derives display values.

    A failed request never raises: balances read as zero, the breakdown is
    empty and :attr:`error` carries a generic message.
    """

    def __init__(
        self,
        client: CashflowClient,
        session_store: Optional[SessionStore] = None,
        forecast_days: int = 30,
        safe_mode: bool = False,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._session_store = session_store
        self._today = today
        self.forecast_days = forecast_days
        self.safe_mode = safe_mode
        self.resource: Resource[ForecastData] = Resource("forecast")
        self._tag_memos: dict[str, TagGroupMemo] = {}

    def set_params(self, forecast_days: int, safe_mode: bool) -> bool:
        if isinstance(forecast_days, bool) or not isinstance(forecast_days, int) or forecast_days <= 0:
            raise ValidationError("Forecast period must be a positive number of days")
        self.forecast_days = forecast_days
        self.safe_mode = bool(safe_mode)
        return self.load()

    def load(self) -> bool:
        days, safe_mode = self.forecast_days, self.safe_mode
        return load_into(
            self.resource,
            lambda cancel: self._client.get_forecast(days, safe_mode, start_date=self._today(), cancel=cancel),
            params=(days, safe_mode),
            error_message=LOAD_ERROR,
            on_unauthenticated=self._session_store.expire if self._session_store else None,
        )

    refresh = load

    # Derived values -------------------------------------------------------
    @property
    def loading(self) -> bool:
        return self.resource.loading

    @property
    def error(self) -> Optional[str]:
        return self.resource.error

    @property
    def forecast(self) -> ForecastData:
        if self.resource.data is not None:
            return self.resource.data
        return ForecastData(forecast_days=self.forecast_days, safe_mode=self.safe_mode)

    @property
    def starting_balance(self) -> float:
        return self.forecast.starting_balance

    @property
    def projected_balance(self) -> float:
        return self.forecast.projected_balance

    @property
    def safe_to_spend(self) -> float:
        return self.forecast.safe_to_spend

    @property
    def daily_breakdown(self) -> list[DailyBreakdown]:
        return self.forecast.daily_breakdown

    @property
    def bank_hold_summary(self) -> list[BankHoldSummary]:
        return self.forecast.bank_hold_summary

    @property
    def warnings(self) -> list[ForecastWarning]:
        return self.forecast.warnings

    @property
    def current_balance(self) -> float:
        return display_balance(self.forecast)

    @property
    def lowest_day(self) -> Optional[DailyBreakdown]:
        return lowest_balance_day(self.daily_breakdown)

    @property
    def total_hold(self) -> float:
        return total_hold(self.bank_hold_summary)

    def chart_points(self) -> list[dict[str, object]]:
        return [{"date": day.date, "balance": day.closing_balance} for day in self.daily_breakdown]

    def tag_groups(self, bank: BankHoldSummary) -> tuple[TagGroup, ...]:
        memo = self._tag_memos.setdefault(bank.bank_account_id, TagGroupMemo())
        return memo(bank.transactions)
