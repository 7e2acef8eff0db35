from datetime import date

import pytest

from cashflow import codec
from cashflow.errors import ValidationError
from cashflow.models import ExpenseTransaction, IncomeTransaction, UserSettings


def test_encode_income_includes_only_income_fields():
    tx = IncomeTransaction(amount=100, transaction_date=date(2026, 10, 25), confidence="LIKELY", description="Bonus")
    payload = codec.encode_transaction(tx)

    assert payload["type"] == "INCOME"
    assert payload["confidence"] == "LIKELY"
    assert payload["transactionDate"] == "2026-10-25"
    assert "isRecurring" not in payload
    assert "id" not in payload


def test_encode_expense_drops_frequency_when_not_recurring():
    tx = ExpenseTransaction(amount=9.5, transaction_date=date(2026, 10, 25), frequency="MONTHLY")
    payload = codec.encode_transaction(tx)

    assert payload["isRecurring"] is False
    assert "frequency" not in payload
    assert "confidence" not in payload


def test_unknown_transaction_type_is_rejected():
    with pytest.raises(ValidationError):
        codec.decode_transaction({"type": "TRANSFER", "amount": 1, "transactionDate": "2026-10-18"})


def test_partial_settings_are_completed_with_defaults():
    settings = codec.decode_settings({"forecastPeriod": 60, "theme": None})

    assert settings == UserSettings(forecast_period=60)


def test_missing_settings_give_defaults():
    assert codec.decode_settings(None) == UserSettings()


def test_encode_settings_rejects_unknown_keys():
    assert codec.encode_settings({"default_safe_mode": True}) == {"defaultSafeMode": True}
    with pytest.raises(ValidationError):
        codec.encode_settings({"colour": "blue"})


def test_base_currency_rate_is_pinned_to_one():
    currency = codec.decode_currency({"code": "EUR", "isBaseCurrency": True, "exchangeRate": 3})
    assert currency.exchange_rate == 1.0


def test_forecast_decodes_bank_holds():
    forecast = codec.decode_forecast(
        {
            "forecastDays": 7,
            "dailyBreakdown": [{"date": "2026-10-18", "openingBalance": 10, "closingBalance": 0}],
            "bankHoldSummary": [
                {"bankAccountId": "B1", "bankAccountName": "Main", "minimumHold": 125, "expenseCount": 3,
                 "transactions": [{"description": "Power", "amount": 40, "tagNames": ["Utilities"]}]}
            ],
        }
    )

    hold = forecast.bank_hold_summary[0]
    assert hold.name == "Main"
    assert hold.transactions[0].tag_names == ["Utilities"]
    assert forecast.daily_breakdown[0].date == date(2026, 10, 18)
    assert forecast.warnings == []
