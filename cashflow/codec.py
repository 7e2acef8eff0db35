"""Translate between the backend's camelCase JSON and :mod:`cashflow.models`.

Decoding is lenient: missing optional keys fall back to the model defaults and
date strings with a time component are truncated to the day.  Encoding is
strict about the few invariants the client is responsible for, raising
:class:`~cashflow.errors.ValidationError` before anything is sent.
"""
from __future__ import annotations

from dataclasses import fields
from datetime import date, datetime
from typing import Any, Iterable, Optional

from dateutil import parser as date_parser

from .errors import ValidationError
from .models import (
    EXPENSE,
    INCOME,
    BankAccount,
    BankHoldSummary,
    Currency,
    DailyBreakdown,
    ExpenseTransaction,
    ForecastData,
    ForecastWarning,
    ImportSummary,
    IncomeTransaction,
    RecurringRule,
    Reminder,
    Tag,
    Transaction,
    TransactionSummary,
    UserSettings,
)

Payload = dict[str, Any]


# ----------------------------------------------------------------------
# Scalar helpers
# ----------------------------------------------------------------------
def parse_day(value: Any) -> Optional[date]:
    """Return ``value`` as a :class:`date`, dropping any time component."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date_parser.isoparse(str(value)).date()
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value!r}") from exc


def format_day(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    return float(value)


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _compact(payload: Payload) -> Payload:
    return {key: value for key, value in payload.items() if value is not None}


# ----------------------------------------------------------------------
# Transactions
# ----------------------------------------------------------------------
def decode_transaction(payload: Payload, base_currency: str = "EUR") -> Transaction:
    common = dict(
        id=payload.get("id"),
        amount=_float(payload.get("amount")),
        transaction_date=parse_day(payload.get("transactionDate")),
        currency_code=payload.get("currencyCode") or base_currency,
        description=payload.get("description") or "",
        amount_in_base_currency=_optional_float(payload.get("amountInBaseCurrency")),
        bank_account_id=payload.get("bankAccountId"),
        tag_ids=list(payload.get("tagIds") or []),
        exchange_rate=_optional_float(payload.get("exchangeRate")),
        original_amount=_optional_float(payload.get("originalAmount")),
        original_currency_code=payload.get("originalCurrencyCode"),
    )
    kind = (payload.get("type") or "").upper()
    if kind == INCOME:
        return IncomeTransaction(
            **common,
            confidence=payload.get("confidence") or "GUARANTEED",
            income_status=payload.get("incomeStatus"),
        )
    if kind == EXPENSE:
        return ExpenseTransaction(
            **common,
            is_recurring=bool(payload.get("isRecurring", False)),
            frequency=payload.get("frequency"),
            reminder_days=payload.get("reminderDays"),
            expense_status=payload.get("expenseStatus"),
        )
    raise ValidationError(f"Unknown transaction type: {payload.get('type')!r}")


def encode_transaction(tx: Transaction) -> Payload:
    if tx.amount is None or tx.amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    payload: Payload = {
        "type": tx.type,
        "amount": tx.amount,
        "currencyCode": tx.currency_code,
        "description": tx.description,
        "transactionDate": format_day(tx.transaction_date),
        "bankAccountId": tx.bank_account_id,
        "tagIds": list(tx.tag_ids),
        "exchangeRate": tx.exchange_rate,
        "originalAmount": tx.original_amount,
        "originalCurrencyCode": tx.original_currency_code,
    }
    if isinstance(tx, IncomeTransaction):
        payload.update(confidence=tx.confidence, incomeStatus=tx.income_status)
    elif isinstance(tx, ExpenseTransaction):
        payload.update(
            isRecurring=tx.is_recurring,
            frequency=tx.frequency if tx.is_recurring else None,
            reminderDays=tx.reminder_days,
            expenseStatus=tx.expense_status,
        )
    return _compact(payload)


# ----------------------------------------------------------------------
# Recurring rules
# ----------------------------------------------------------------------
def decode_rule(payload: Payload, base_currency: str = "EUR") -> RecurringRule:
    return RecurringRule(
        id=payload.get("id"),
        type=(payload.get("type") or EXPENSE).upper(),
        amount=_float(payload.get("amount")),
        frequency=payload.get("frequency") or "MONTHLY",
        start_date=parse_day(payload.get("startDate")),
        end_date=parse_day(payload.get("endDate")),
        currency_code=payload.get("currencyCode") or base_currency,
        description=payload.get("description") or "",
        active=bool(payload.get("active", True)),
        reminder_days=payload.get("reminderDays"),
        is_end_of_month=bool(payload.get("isEndOfMonth", False)),
        bank_account_id=payload.get("bankAccountId"),
        tag_ids=list(payload.get("tagIds") or []),
        confidence=payload.get("confidence"),
        last_run_date=parse_day(payload.get("lastRunDate")),
        original_amount=_optional_float(payload.get("originalAmount")),
        original_currency_code=payload.get("originalCurrencyCode"),
        exchange_rate=_optional_float(payload.get("exchangeRate")),
    )


# ----------------------------------------------------------------------
# Forecast
# ----------------------------------------------------------------------
def decode_summary(payload: Payload) -> TransactionSummary:
    return TransactionSummary(
        description=payload.get("description") or "",
        amount=_float(payload.get("amount")),
        confidence=payload.get("confidence"),
        is_recurring=bool(payload.get("isRecurring", False)),
        bank_account_id=payload.get("bankAccountId"),
        bank_account_name=payload.get("bankAccountName"),
        tag_names=list(payload.get("tagNames") or []),
        transaction_date=parse_day(payload.get("transactionDate")),
    )


def _summaries(items: Optional[Iterable[Payload]]) -> list[TransactionSummary]:
    return [decode_summary(item) for item in items or []]


def decode_forecast(payload: Payload) -> ForecastData:
    breakdown = [
        DailyBreakdown(
            date=parse_day(day.get("date")),
            opening_balance=_float(day.get("openingBalance")),
            closing_balance=_float(day.get("closingBalance")),
            income=_summaries(day.get("income")),
            expenses=_summaries(day.get("expenses")),
        )
        for day in payload.get("dailyBreakdown") or []
    ]
    warnings = [
        ForecastWarning(
            date=parse_day(item.get("date")),
            type=item.get("type") or "",
            message=item.get("message") or "",
            projected_balance=_float(item.get("projectedBalance")),
        )
        for item in payload.get("warnings") or []
    ]
    holds = [
        BankHoldSummary(
            bank_account_id=item.get("bankAccountId"),
            name=item.get("bankAccountName") or item.get("name") or "",
            color=item.get("color"),
            minimum_hold=_float(item.get("minimumHold")),
            expense_count=int(item.get("expenseCount") or 0),
            transactions=_summaries(item.get("transactions")),
        )
        for item in payload.get("bankHoldSummary") or []
    ]
    return ForecastData(
        forecast_days=int(payload.get("forecastDays") or 0),
        safe_mode=bool(payload.get("safeMode", False)),
        starting_balance=_float(payload.get("startingBalance")),
        projected_balance=_float(payload.get("projectedBalance")),
        total_guaranteed_income=_float(payload.get("totalGuaranteedIncome")),
        total_likely_income=_float(payload.get("totalLikelyIncome")),
        total_expenses=_float(payload.get("totalExpenses")),
        safe_to_spend=_float(payload.get("safeToSpend")),
        daily_breakdown=breakdown,
        warnings=warnings,
        bank_hold_summary=holds,
    )


# ----------------------------------------------------------------------
# Reference data
# ----------------------------------------------------------------------
def decode_currency(payload: Payload) -> Currency:
    is_base = bool(payload.get("isBaseCurrency", False))
    return Currency(
        id=payload.get("id"),
        code=payload.get("code") or "",
        name=payload.get("name") or "",
        symbol=payload.get("symbol") or "",
        exchange_rate=1.0 if is_base else _float(payload.get("exchangeRate"), 1.0),
        is_base_currency=is_base,
    )


def encode_currency(currency: Currency) -> Payload:
    return {
        "code": currency.code.upper(),
        "name": currency.name,
        "symbol": currency.symbol,
        "exchangeRate": 1.0 if currency.is_base_currency else currency.exchange_rate,
        "isBaseCurrency": currency.is_base_currency,
    }


def decode_bank_account(payload: Payload) -> BankAccount:
    return BankAccount(
        id=payload.get("id"),
        name=payload.get("name") or "",
        bank_name=payload.get("bankName"),
        currency=payload.get("currency") or payload.get("currencyCode") or "",
        is_default=bool(payload.get("isDefault", False)),
        color=payload.get("color"),
    )


def encode_bank_account(account: BankAccount) -> Payload:
    return _compact(
        {
            "name": account.name,
            "bankName": account.bank_name,
            "currency": account.currency,
            "isDefault": account.is_default,
            "color": account.color,
        }
    )


def decode_tag(payload: Payload) -> Tag:
    return Tag(
        id=payload.get("id"),
        name=payload.get("name") or "",
        color=payload.get("color"),
        icon=payload.get("icon"),
    )


def encode_tag(tag: Tag) -> Payload:
    return _compact({"name": tag.name, "color": tag.color, "icon": tag.icon})


def decode_reminder(payload: Payload) -> Reminder:
    return Reminder(
        rule_id=payload.get("ruleId") or "",
        description=payload.get("description") or "",
        amount=_float(payload.get("amount")),
        currency_code=payload.get("currencyCode") or "",
        due_date=parse_day(payload.get("dueDate")),
        days_until_due=int(payload.get("daysUntilDue") or 0),
        bank_account_name=payload.get("bankAccountName"),
        message=payload.get("message") or "",
    )


def decode_import_summary(payload: Payload) -> ImportSummary:
    return ImportSummary(
        total_processed=int(payload.get("totalProcessed") or 0),
        imported_count=int(payload.get("importedCount") or 0),
        skipped_count=int(payload.get("skippedCount") or 0),
        error_count=int(payload.get("errorCount") or 0),
    )


# ----------------------------------------------------------------------
# Settings
# ----------------------------------------------------------------------
_SETTINGS_KEYS = {
    "forecast_period": "forecastPeriod",
    "default_safe_mode": "defaultSafeMode",
    "low_balance_warning": "lowBalanceWarning",
    "theme": "theme",
    "date_format": "dateFormat",
}


def decode_settings(payload: Optional[Payload], defaults: Optional[UserSettings] = None) -> UserSettings:
    """Overlay whatever keys the backend sent on top of ``defaults``."""

    base = defaults or UserSettings()
    values = {f.name: getattr(base, f.name) for f in fields(UserSettings)}
    for attr, key in _SETTINGS_KEYS.items():
        if payload and payload.get(key) is not None:
            values[attr] = payload[key]
    values["forecast_period"] = int(values["forecast_period"])
    values["low_balance_warning"] = float(values["low_balance_warning"])
    values["default_safe_mode"] = bool(values["default_safe_mode"])
    return UserSettings(**values)


def encode_settings(partial: dict[str, Any]) -> Payload:
    unknown = set(partial) - set(_SETTINGS_KEYS)
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")
    return {_SETTINGS_KEYS[attr]: value for attr, value in partial.items()}


__all__ = [
    "decode_bank_account",
    "decode_currency",
    "decode_forecast",
    "decode_import_summary",
    "decode_reminder",
    "decode_rule",
    "decode_settings",
    "decode_summary",
    "decode_tag",
    "decode_transaction",
    "encode_bank_account",
    "encode_currency",
    "encode_settings",
    "encode_tag",
    "encode_transaction",
    "format_day",
    "parse_day",
]
