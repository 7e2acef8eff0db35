"""Settings screens for currencies, bank accounts and tags."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Generic, Optional, Sequence, TypeVar

from .client import CashflowClient
from .errors import CashflowError, UnauthenticatedError, ValidationError
from .models import BankAccount, Currency, Tag
from .session import SessionStore
from .state import CancelToken, Confirm, Resource, load_into

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReferenceSettings(Generic[T]):
    """List plus create/update/delete for one kind of reference data."""

    noun = "item"

    def __init__(self, client: CashflowClient, session_store: Optional[SessionStore] = None) -> None:
        self._client = client
        self._session_store = session_store
        self.resource: Resource[tuple[T, ...]] = Resource(f"{self.noun}s", empty=())
        self.action_error: Optional[str] = None

    # Backend hooks ----------------------------------------------------------
    def _list(self, cancel: CancelToken) -> Sequence[T]:
        raise NotImplementedError

    def _create(self, item: T) -> T:
        raise NotImplementedError

    def _update(self, item_id: str, item: T) -> T:
        raise NotImplementedError

    def _delete(self, item_id: str) -> None:
        raise NotImplementedError

    def _validate(self, item: T) -> T:
        return item

    # Operations -------------------------------------------------------------
    def load(self) -> bool:
        return load_into(
            self.resource,
            lambda cancel: tuple(self._list(cancel)),
            error_message=f"Failed to load {self.noun}s",
            on_unauthenticated=self._expire,
        )

    @property
    def items(self) -> tuple[T, ...]:
        return self.resource.data or ()

    @property
    def error(self) -> Optional[str]:
        return self.action_error or self.resource.error

    def create(self, item: T) -> bool:
        item = self._validate(item)
        return self._act(f"create {self.noun}", lambda: self._create(item))

    def update(self, item_id: str, item: T) -> bool:
        item = self._validate(item)
        return self._act(f"update {self.noun}", lambda: self._update(item_id, item))

    def delete(self, item_id: str, confirm: Confirm) -> bool:
        if not confirm(f"Are you sure you want to delete this {self.noun}?"):
            return False
        return self._act(f"delete {self.noun}", lambda: self._delete(item_id))

    def _act(self, action: str, call: Callable[[], object]) -> bool:
        self.action_error = None
        try:
            call()
        except UnauthenticatedError:
            self._expire()
            return False
        except CashflowError:
            logger.exception("Failed to %s", action)
            self.action_error = f"Failed to {action}"
            return False
        self.load()
        return True

    def _expire(self) -> None:
        if self._session_store is not None:
            self._session_store.expire()


class CurrencySettings(ReferenceSettings[Currency]):
    noun = "currency"

    def __init__(self, client: CashflowClient, session_store: Optional[SessionStore] = None) -> None:
        super().__init__(client, session_store)
        self.resource.name = "currencies"

    def _list(self, cancel: CancelToken) -> Sequence[Currency]:
        return self._client.list_currencies(cancel=cancel)

    def _create(self, item: Currency) -> Currency:
        return self._client.create_currency(item)

    def _update(self, item_id: str, item: Currency) -> Currency:
        return self._client.update_currency(item_id, item)

    def _delete(self, item_id: str) -> None:
        self._client.delete_currency(item_id)

    def _validate(self, item: Currency) -> Currency:
        code = item.code.strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValidationError("Currency code must be three letters")
        if item.is_base_currency:
            return replace(item, code=code, exchange_rate=1.0)
        if item.exchange_rate is None or item.exchange_rate <= 0:
            raise ValidationError("Exchange rate must be greater than zero")
        return replace(item, code=code)

    @property
    def base(self) -> Optional[Currency]:
        return next((item for item in self.items if item.is_base_currency), None)

    def rate_editable(self, currency: Currency) -> bool:
        return not currency.is_base_currency

    def set_base(self, currency_id: str) -> bool:
        return self._act("set base currency", lambda: self._client.set_base_currency(currency_id))


class BankAccountSettings(ReferenceSettings[BankAccount]):
    noun = "bank account"

    def _list(self, cancel: CancelToken) -> Sequence[BankAccount]:
        return self._client.list_bank_accounts(cancel=cancel)

    def _create(self, item: BankAccount) -> BankAccount:
        return self._client.create_bank_account(item)

    def _update(self, item_id: str, item: BankAccount) -> BankAccount:
        return self._client.update_bank_account(item_id, item)

    def _delete(self, item_id: str) -> None:
        self._client.delete_bank_account(item_id)

    def _validate(self, item: BankAccount) -> BankAccount:
        if not item.name.strip():
            raise ValidationError("Bank account name is required")
        return item


class TagSettings(ReferenceSettings[Tag]):
    noun = "tag"

    def _list(self, cancel: CancelToken) -> Sequence[Tag]:
        return self._client.list_tags(cancel=cancel)

    def _create(self, item: Tag) -> Tag:
        return self._client.create_tag(item)

    def _update(self, item_id: str, item: Tag) -> Tag:
        return self._client.update_tag(item_id, item)

    def _delete(self, item_id: str) -> None:
        self._client.delete_tag(item_id)

    def _validate(self, item: Tag) -> Tag:
        if not item.name.strip():
            raise ValidationError("Tag name is required")
        return item
