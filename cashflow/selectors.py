"""Pickers for bank accounts, currencies and tags.

A selector fetches its collection once, reports selection changes through a
plain callback and never writes to the backend.
"""
from __future__ import annotations

import logging
from typing import Callable, Generic, Optional, Sequence, TypeVar

from .client import CashflowClient
from .models import BankAccount, Currency, Tag
from .session import SessionStore
from .state import CancelToken, Resource, load_into

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReferenceSelector(Generic[T]):
    name = "reference data"

    def __init__(
        self,
        client: CashflowClient,
        on_change: Callable[..., None],
        session_store: Optional[SessionStore] = None,
    ) -> None:
        self._client = client
        self._session_store = session_store
        self.on_change = on_change
        self.resource: Resource[tuple[T, ...]] = Resource(self.name, empty=())

    def _fetch(self, cancel: CancelToken) -> Sequence[T]:
        raise NotImplementedError

    def _label(self, item: T) -> str:
        raise NotImplementedError

    def mount(self) -> bool:
        """Fetch the collection; callers show a skeleton while :attr:`loading`."""

        if self.resource.data:
            return True
        loaded = load_into(
            self.resource,
            lambda cancel: tuple(self._fetch(cancel)),
            error_message=f"Failed to load {self.name}",
            on_unauthenticated=self._session_store.expire if self._session_store else None,
        )
        if loaded:
            self._after_load()
        return loaded

    def _after_load(self) -> None:
        pass

    @property
    def loading(self) -> bool:
        return self.resource.loading

    @property
    def items(self) -> tuple[T, ...]:
        return self.resource.data or ()

    def find(self, item_id: Optional[str]) -> Optional[T]:
        for item in self.items:
            if getattr(item, "id", None) == item_id:
                return item
        return None

    def label_for(self, item_id: Optional[str]) -> str:
        item = self.find(item_id)
        return self._label(item) if item is not None else ""

    def options(self) -> list[tuple[str, str]]:
        return [(item.id, self._label(item)) for item in self.items]


class BankAccountSelector(ReferenceSelector[BankAccount]):
    name = "bank accounts"

    def __init__(
        self,
        client: CashflowClient,
        on_change: Callable[[str], None],
        value: Optional[str] = None,
        session_store: Optional[SessionStore] = None,
    ) -> None:
        super().__init__(client, on_change, session_store)
        self.value = value

    def _fetch(self, cancel: CancelToken) -> Sequence[BankAccount]:
        return self._client.list_bank_accounts(cancel=cancel)

    def _label(self, item: BankAccount) -> str:
        return f"{item.name} ({item.currency})"

    def _after_load(self) -> None:
        if self.value or not self.items:
            return
        default = next((account for account in self.items if account.is_default), self.items[0])
        self.select(default.id)

    def select(self, account_id: str) -> None:
        self.value = account_id
        self.on_change(account_id)


class CurrencySelector(ReferenceSelector[Currency]):
    name = "currencies"

    def __init__(
        self,
        client: CashflowClient,
        on_change: Callable[[str], None],
        value: Optional[str] = None,
        session_store: Optional[SessionStore] = None,
    ) -> None:
        super().__init__(client, on_change, session_store)
        self.value = value

    def _fetch(self, cancel: CancelToken) -> Sequence[Currency]:
        return self._client.list_currencies(cancel=cancel)

    def _label(self, item: Currency) -> str:
        return f"{item.code} - {item.name}"

    def find_code(self, code: str) -> Optional[Currency]:
        return next((item for item in self.items if item.code == code), None)

    def label_for(self, item_id: Optional[str]) -> str:
        # Currencies are selected by code rather than by id.
        item = self.find_code(item_id) or self.find(item_id)
        return self._label(item) if item is not None else ""

    def options(self) -> list[tuple[str, str]]:
        return [(item.code, self._label(item)) for item in self.items]

    def select(self, code: str) -> None:
        self.value = code
        self.on_change(code)


class TagSelector(ReferenceSelector[Tag]):
    """Multi-select over tags: ``selected_tag_ids -> on_change(next ids)``."""

    name = "tags"

    def __init__(
        self,
        client: CashflowClient,
        on_change: Callable[[list[str]], None],
        selected_tag_ids: Sequence[str] = (),
        session_store: Optional[SessionStore] = None,
    ) -> None:
        super().__init__(client, on_change, session_store)
        self.selected_tag_ids = list(selected_tag_ids)

    def _fetch(self, cancel: CancelToken) -> Sequence[Tag]:
        return self._client.list_tags(cancel=cancel)

    def _label(self, item: Tag) -> str:
        return item.name

    def selected(self) -> list[Tag]:
        return [tag for tag in self.items if tag.id in self.selected_tag_ids]

    def available(self) -> list[Tag]:
        return [tag for tag in self.items if tag.id not in self.selected_tag_ids]

    def search(self, term: str) -> list[Tag]:
        needle = term.strip().lower()
        return [tag for tag in self.available() if needle in tag.name.lower()]

    def toggle(self, tag_id: str) -> list[str]:
        if tag_id in self.selected_tag_ids:
            next_ids = [item for item in self.selected_tag_ids if item != tag_id]
        else:
            next_ids = [*self.selected_tag_ids, tag_id]
        self.selected_tag_ids = next_ids
        self.on_change(list(next_ids))
        return next_ids
