"""Transaction list view-model.

Fetching and filtering are kept apart.  The date range decides *which request*
is sent; everything else is the pure :func:`apply_pipeline`, re-run from the
latest fetched snapshot whenever any input changes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from . import export
from .client import CashflowClient
from .errors import CashflowError, UnauthenticatedError
from .models import ExpenseTransaction, IncomeTransaction, Transaction
from .session import SessionStore
from .state import Confirm, Resource, Status, load_into

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load transactions"


class TypeFilter(str, Enum):
    ALL = "ALL"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class EmptyState(str, Enum):
    ADJUST_FILTERS = "No transactions match. Try adjusting your filters."
    ADD_FIRST = "No upcoming transactions yet. Add your first transaction."


@dataclass(frozen=True)
class DateRange:
    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def complete(self) -> bool:
        return self.start is not None and self.end is not None

    @property
    def empty(self) -> bool:
        return self.start is None and self.end is None


@dataclass(frozen=True)
class TransactionListView:
    items: tuple[Transaction, ...]
    empty_state: Optional[EmptyState] = None
    error: Optional[str] = None
    loading: bool = False


# ----------------------------------------------------------------------
# Pure pipeline
# ----------------------------------------------------------------------
def amount_text(amount: float) -> str:
    """Render ``amount`` the way it is displayed: ``4500``, ``15.99``, ``0.00001``."""

    return format(Decimal(str(float(amount))).normalize(), "f")


def upcoming(transactions: Iterable[Transaction], today: date) -> list[Transaction]:
    """Today and future only, soonest first."""

    kept = [tx for tx in transactions if tx.transaction_date >= today]
    return sorted(kept, key=lambda tx: tx.transaction_date)


def matches_search(tx: Transaction, query: str) -> bool:
    needle = query.strip()
    if not needle:
        return True
    return needle.lower() in (tx.description or "").lower() or needle in amount_text(tx.amount)


def matches_type(tx: Transaction, type_filter: TypeFilter) -> bool:
    if type_filter is TypeFilter.INCOME:
        return isinstance(tx, IncomeTransaction)
    if type_filter is TypeFilter.EXPENSE:
        return isinstance(tx, ExpenseTransaction)
    return True


def apply_pipeline(
    transactions: Iterable[Transaction],
    type_filter: TypeFilter,
    search_query: str,
    today: date,
) -> list[Transaction]:
    """Date floor, sort, search, then type filter, always in that order."""

    rows = upcoming(transactions, today)
    rows = [tx for tx in rows if matches_search(tx, search_query)]
    return [tx for tx in rows if matches_type(tx, type_filter)]


# ----------------------------------------------------------------------
# View-model
# ----------------------------------------------------------------------
class TransactionListViewModel:
    def __init__(
        self,
        client: CashflowClient,
        session_store: Optional[SessionStore] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._session_store = session_store
        self._today = today
        self.type_filter = TypeFilter.ALL
        self.date_range = DateRange()
        self.search_query = ""
        self.action_error: Optional[str] = None
        self.resource: Resource[tuple[Transaction, ...]] = Resource("transactions", empty=())

    # Inputs ---------------------------------------------------------------
    def set_type_filter(self, type_filter: TypeFilter | str) -> None:
        self.type_filter = TypeFilter(type_filter)

    def set_search(self, query: str) -> None:
        self.search_query = query or ""

    def set_date_range(self, date_range: Optional[DateRange]) -> bool:
        """Change the range; a different range triggers a new fetch."""

        date_range = date_range or DateRange()
        if date_range == self.date_range and self.resource.status is not Status.IDLE:
            return False
        self.date_range = date_range
        return self.load()

    def apply_filters(self, type_filter: TypeFilter | str, date_range: Optional[DateRange]) -> bool:
        self.set_type_filter(type_filter)
        return self.set_date_range(date_range)

    def clear_filters(self) -> bool:
        self.type_filter = TypeFilter.ALL
        self.search_query = ""
        return self.set_date_range(DateRange())

    @property
    def filter_active(self) -> bool:
        return (
            self.type_filter is not TypeFilter.ALL
            or not self.date_range.empty
            or bool(self.search_query.strip())
        )

    # Fetching -------------------------------------------------------------
    def load(self) -> bool:
        date_range = self.date_range

        def fetch(cancel) -> tuple[Transaction, ...]:
            if date_range.complete:
                rows = self._client.list_transactions(date_range.start, date_range.end, cancel=cancel)
            else:
                rows = self._client.list_transactions(cancel=cancel)
            return tuple(rows)

        return load_into(
            self.resource,
            fetch,
            params=date_range,
            error_message=LOAD_ERROR,
            on_unauthenticated=self._expire,
        )

    refresh = load

    def view(self) -> TransactionListView:
        if self.resource.status is Status.ERROR:
            return TransactionListView((), None, self.resource.error)
        if self.resource.loading:
            return TransactionListView((), None, None, loading=True)
        items = tuple(
            apply_pipeline(self.resource.data or (), self.type_filter, self.search_query, self._today())
        )
        empty_state = None
        if not items:
            empty_state = EmptyState.ADJUST_FILTERS if self.filter_active else EmptyState.ADD_FIRST
        return TransactionListView(items, empty_state)

    # Mutations ------------------------------------------------------------
    def add(self, tx: Transaction) -> bool:
        return self._mutate("add transaction", lambda: self._client.create_transaction(tx))

    def update(self, tx_id: str, tx: Transaction) -> bool:
        return self._mutate("update transaction", lambda: self._client.update_transaction(tx_id, tx))

    def delete(self, tx_id: str, confirm: Confirm) -> bool:
        if not confirm("Are you sure you want to delete this transaction?"):
            return False
        return self._mutate("delete transaction", lambda: self._client.delete_transaction(tx_id))

    def mark_received(self, tx_id: str) -> bool:
        return self._mutate("mark as received", lambda: self._client.mark_received(tx_id))

    def mark_paid(self, tx_id: str) -> bool:
        return self._mutate("mark as paid", lambda: self._client.mark_paid(tx_id))

    def skip(self, tx_id: str) -> bool:
        return self._mutate("skip", lambda: self._client.skip_transaction(tx_id))

    def set_confidence(self, tx_id: str, confidence: str) -> bool:
        return self._mutate("update confidence", lambda: self._client.update_confidence(tx_id, confidence))

    def export_csv(self) -> str:
        """Export everything fetched, past rows included, soonest first."""

        rows = sorted(self.resource.data or (), key=lambda tx: tx.transaction_date)
        return export.transactions_to_csv(rows)

    def _mutate(self, action: str, call: Callable[[], object]) -> bool:
        self.action_error = None
        try:
            call()
        except UnauthenticatedError:
            self._expire()
            return False
        except CashflowError as exc:
            logger.exception("Failed to %s", action)
            self.action_error = f"Failed to {action}: {exc}"
            return False
        self.load()
        return True

    def _expire(self) -> None:
        if self._session_store is not None:
            self._session_store.expire()


def upcoming_preview(transactions: Sequence[Transaction], today: date, limit: int = 5) -> list[Transaction]:
    return upcoming(transactions, today)[:limit]
