"""Domain models used by the cashflow client.

The classes defined here are lightweight data containers that do not know
anything about the wire format.  Translating to and from the backend's JSON
lives in :mod:`cashflow.codec` so the view-models can be tested with plain
objects.

Income and expense transactions are distinct classes sharing a common base.
Code that needs to branch on the variant uses ``isinstance`` rather than
comparing type strings.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import ClassVar, Optional

INCOME = "INCOME"
EXPENSE = "EXPENSE"

GUARANTEED = "GUARANTEED"
LIKELY = "LIKELY"

FREQUENCIES = ("DAILY", "WEEKLY", "BIWEEKLY", "MONTHLY", "QUARTERLY", "HALF_YEARLY", "YEARLY")


@dataclass(slots=True)
class Transaction:
    """A single dated money movement.

    ``amount`` is always positive; the direction comes from the subclass.
    ``transaction_date`` is truncated to the day when decoded.
    """

    type: ClassVar[str] = ""

    amount: float
    transaction_date: date
    id: Optional[str] = None
    currency_code: str = "EUR"
    description: str = ""
    amount_in_base_currency: Optional[float] = None
    bank_account_id: Optional[str] = None
    tag_ids: list[str] = field(default_factory=list)
    exchange_rate: Optional[float] = None
    original_amount: Optional[float] = None
    original_currency_code: Optional[str] = None

    @property
    def status(self) -> Optional[str]:
        return None


@dataclass(slots=True)
class IncomeTransaction(Transaction):
    type: ClassVar[str] = INCOME

    confidence: str = GUARANTEED
    income_status: Optional[str] = None

    @property
    def status(self) -> Optional[str]:
        return self.income_status


@dataclass(slots=True)
class ExpenseTransaction(Transaction):
    type: ClassVar[str] = EXPENSE

    is_recurring: bool = False
    frequency: Optional[str] = None
    reminder_days: Optional[int] = None
    expense_status: Optional[str] = None

    @property
    def status(self) -> Optional[str]:
        return self.expense_status


@dataclass(slots=True)
class RecurringRule:
    """Template the backend expands into future transactions."""

    type: str
    amount: float
    frequency: str
    start_date: date
    id: Optional[str] = None
    currency_code: str = "EUR"
    description: str = ""
    end_date: Optional[date] = None
    active: bool = True
    reminder_days: Optional[int] = None
    is_end_of_month: bool = False
    bank_account_id: Optional[str] = None
    tag_ids: list[str] = field(default_factory=list)
    confidence: Optional[str] = None
    last_run_date: Optional[date] = None
    original_amount: Optional[float] = None
    original_currency_code: Optional[str] = None
    exchange_rate: Optional[float] = None


@dataclass(slots=True)
class TransactionSummary:
    """Compact transaction entry embedded in forecast payloads."""

    description: str
    amount: float
    confidence: Optional[str] = None
    is_recurring: bool = False
    bank_account_id: Optional[str] = None
    bank_account_name: Optional[str] = None
    tag_names: list[str] = field(default_factory=list)
    transaction_date: Optional[date] = None


@dataclass(slots=True)
class DailyBreakdown:
    date: date
    opening_balance: float
    closing_balance: float
    income: list[TransactionSummary] = field(default_factory=list)
    expenses: list[TransactionSummary] = field(default_factory=list)


@dataclass(slots=True)
class ForecastWarning:
    date: date
    type: str
    message: str
    projected_balance: float


@dataclass(slots=True)
class BankHoldSummary:
    """Balance a bank account must retain for its upcoming expenses."""

    bank_account_id: str
    name: str
    minimum_hold: float
    expense_count: int
    color: Optional[str] = None
    transactions: list[TransactionSummary] = field(default_factory=list)


@dataclass(slots=True)
class ForecastData:
    forecast_days: int
    safe_mode: bool
    starting_balance: float = 0.0
    projected_balance: float = 0.0
    total_guaranteed_income: float = 0.0
    total_likely_income: float = 0.0
    total_expenses: float = 0.0
    safe_to_spend: float = 0.0
    daily_breakdown: list[DailyBreakdown] = field(default_factory=list)
    warnings: list[ForecastWarning] = field(default_factory=list)
    bank_hold_summary: list[BankHoldSummary] = field(default_factory=list)


@dataclass(slots=True)
class Currency:
    code: str
    name: str
    symbol: str
    id: Optional[str] = None
    exchange_rate: float = 1.0
    is_base_currency: bool = False


@dataclass(slots=True)
class BankAccount:
    name: str
    currency: str
    id: Optional[str] = None
    bank_name: Optional[str] = None
    is_default: bool = False
    color: Optional[str] = None


@dataclass(slots=True)
class Tag:
    name: str
    id: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


@dataclass(slots=True)
class UserSettings:
    """Per-user preferences; the defaults apply to anything the backend omits."""

    forecast_period: int = 30
    default_safe_mode: bool = False
    low_balance_warning: float = 500.0
    theme: str = "light"
    date_format: str = "DD/MM/YYYY"


@dataclass(slots=True)
class Reminder:
    rule_id: str
    description: str
    amount: float
    currency_code: str
    due_date: date
    days_until_due: int
    message: str = ""
    bank_account_name: Optional[str] = None


@dataclass(slots=True)
class ImportSummary:
    total_processed: int = 0
    imported_count: int = 0
    skipped_count: int = 0
    error_count: int = 0


__all__ = [
    "BankAccount",
    "BankHoldSummary",
    "Currency",
    "DailyBreakdown",
    "EXPENSE",
    "ExpenseTransaction",
    "FREQUENCIES",
    "ForecastData",
    "ForecastWarning",
    "GUARANTEED",
    "INCOME",
    "ImportSummary",
    "IncomeTransaction",
    "LIKELY",
    "RecurringRule",
    "Reminder",
    "Tag",
    "Transaction",
    "TransactionSummary",
    "UserSettings",
]
