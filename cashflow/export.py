"""CSV export of already-fetched transactions."""
from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Sequence

import pandas as pd

from .errors import ValidationError
from .models import Transaction

COLUMNS = ["Date", "Type", "Amount", "Currency", "Description", "Category/Status"]


def transactions_frame(transactions: Sequence[Transaction]) -> pd.DataFrame:
    rows = [
        {
            "Date": tx.transaction_date.isoformat(),
            "Type": tx.type,
            "Amount": tx.amount,
            "Currency": tx.currency_code,
            "Description": tx.description or "",
            "Category/Status": tx.status or "",
        }
        for tx in transactions
    ]
    return pd.DataFrame(rows, columns=COLUMNS)


def transactions_to_csv(transactions: Sequence[Transaction]) -> str:
    """Return the CSV text; descriptions with commas or quotes are quoted."""

    if not transactions:
        raise ValidationError("No transactions to export")
    return transactions_frame(transactions).to_csv(index=False, lineterminator="\n")


def export_filename(today: date) -> str:
    return f"cashflow_export_{today.isoformat()}.csv"


def write_export(transactions: Sequence[Transaction], directory: Path, today: date) -> Path:
    path = Path(directory) / export_filename(today)
    path.write_text(transactions_to_csv(transactions), encoding="utf-8")
    return path
