from datetime import date

import pytest

from cashflow.models import ExpenseTransaction, IncomeTransaction

TODAY = date(2026, 10, 18)


class FakeClient:
    """Stands in for CashflowClient; each response may be a value, an exception or a callable."""

    base_currency = "EUR"

    def __init__(self, **responses):
        self.responses = responses
        self.calls = []

    def __getattr__(self, name):
        if name.startswith("__"):
            raise AttributeError(name)

        def method(*args, **kwargs):
            kwargs.pop("cancel", None)
            self.calls.append((name, args, kwargs))
            value = self.responses.get(name)
            if isinstance(value, Exception):
                raise value
            if callable(value):
                return value(*args, **kwargs)
            return value

        return method

    def called(self, name):
        return [call for call in self.calls if call[0] == name]


def income(tx_id, amount, day, description="", **extra):
    return IncomeTransaction(id=tx_id, amount=amount, transaction_date=day, description=description, **extra)


def expense(tx_id, amount, day, description="", **extra):
    return ExpenseTransaction(id=tx_id, amount=amount, transaction_date=day, description=description, **extra)


@pytest.fixture
def today():
    return lambda: TODAY
