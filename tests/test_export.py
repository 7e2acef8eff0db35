import io
from datetime import date

import pandas as pd
import pytest

from cashflow.errors import ValidationError
from cashflow.export import COLUMNS, export_filename, transactions_to_csv, write_export

from conftest import expense, income


def exported():
    return [
        income("1", 4500.0, date(2026, 10, 25), "Salary, October", income_status="PENDING"),
        expense("2", 15.99, date(2026, 10, 19), 'The "Big" Shop, downtown', expense_status="UPCOMING"),
        expense("3", 40.0, date(2026, 11, 1), ""),
    ]


def as_tuples(transactions):
    return [
        (tx.transaction_date.isoformat(), tx.type, tx.amount, tx.currency_code, tx.description, tx.status or "")
        for tx in transactions
    ]


def test_header_has_fixed_column_order():
    text = transactions_to_csv(exported())
    assert text.splitlines()[0] == "Date,Type,Amount,Currency,Description,Category/Status"


def test_descriptions_with_quotes_are_escaped():
    text = transactions_to_csv(exported())
    assert '"The ""Big"" Shop, downtown"' in text


def test_round_trip_reproduces_exported_rows():
    text = transactions_to_csv(exported())
    frame = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)

    assert list(frame.columns) == COLUMNS
    parsed = [
        (row.Date, row.Type, float(row.Amount), row.Currency, row.Description, row[-1])
        for row in frame.itertuples(index=False)
    ]
    assert parsed == as_tuples(exported())


def test_empty_export_is_rejected():
    with pytest.raises(ValidationError):
        transactions_to_csv([])


def test_export_filename_and_write(tmp_path):
    assert export_filename(date(2026, 10, 18)) == "cashflow_export_2026-10-18.csv"

    path = write_export(exported(), tmp_path, date(2026, 10, 18))
    assert path.name == "cashflow_export_2026-10-18.csv"
    assert path.read_text(encoding="utf-8").startswith("Date,Type")
