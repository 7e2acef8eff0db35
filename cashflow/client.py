"""REST gateway for the cash-flow backend.

Every outbound call goes through :meth:`CashflowClient._request`, which
attaches the bearer token from the session provider and maps HTTP failures
onto :mod:`cashflow.errors`.  Public methods decode the JSON body into
:mod:`cashflow.models` objects.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import IO, Any, Callable, Optional, TypeVar

import requests

from . import codec
from .config import AppConfig
from .errors import ApiError, CashflowError, TransportError, UnauthenticatedError, ValidationError
from .models import (
    BankAccount,
    Currency,
    ForecastData,
    ImportSummary,
    RecurringRule,
    Reminder,
    Tag,
    Transaction,
    UserSettings,
)
from .session import SessionProvider
from .state import CancelToken

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSACTIONS = "/transactions"
RECURRING_RULES = "/recurring-rules"
BANK_ACCOUNTS = "/bank-accounts"
CURRENCIES = "/currencies"
TAGS = "/tags"


class CashflowClient:
    """Typed access to the backend REST API."""

    def __init__(
        self,
        config: AppConfig,
        session_provider: SessionProvider,
        http: Optional[requests.Session] = None,
    ) -> None:
        self._config = config
        self._sessions = session_provider
        self._http = http or requests.Session()

    @property
    def base_currency(self) -> str:
        return self._config.base_currency

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def _headers(self) -> dict[str, str]:
        session = self._sessions.get_session()
        if session is None or not session.access_token:
            raise UnauthenticatedError("No active session")
        return {
            "Authorization": f"Bearer {session.access_token}",
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        files: Any = None,
        cancel: Optional[CancelToken] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (``None`` if empty)."""

        headers = self._headers()
        if cancel is not None:
            cancel.raise_if_cancelled()
        url = f"{self._config.api_root}{path}"
        try:
            response = self._http.request(
                method,
                url,
                params={k: v for k, v in (params or {}).items() if v is not None} or None,
                json=json,
                files=files,
                headers=headers,
                timeout=self._config.request_timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        if cancel is not None:
            cancel.raise_if_cancelled()

        status = response.status_code
        if status in (401, 403):
            raise UnauthenticatedError(f"{method} {path} rejected with {status}")
        if status in (400, 422):
            raise ValidationError(_error_detail(response) or f"{method} {path} rejected as invalid")
        if status >= 500:
            raise TransportError(f"{method} {path} failed with {status}")
        if status >= 400:
            raise ApiError(_error_detail(response) or f"{method} {path} failed with {status}", status)

        if status == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"{method} {path} returned invalid JSON") from exc

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        cancel: Optional[CancelToken] = None,
    ) -> list[Transaction]:
        params = None
        if start_date is not None and end_date is not None:
            params = {"startDate": start_date.isoformat(), "endDate": end_date.isoformat()}
        payload = self._request("GET", TRANSACTIONS, params=params, cancel=cancel) or []
        return decode_list(codec.decode_transaction, payload, self.base_currency)

    def create_transaction(self, tx: Transaction) -> Transaction:
        payload = self._request("POST", TRANSACTIONS, json=codec.encode_transaction(tx))
        return decode_payload(codec.decode_transaction, payload, self.base_currency)

    def update_transaction(self, tx_id: str, tx: Transaction) -> Transaction:
        payload = self._request("PUT", f"{TRANSACTIONS}/{tx_id}", json=codec.encode_transaction(tx))
        return decode_payload(codec.decode_transaction, payload, self.base_currency)

    def delete_transaction(self, tx_id: str) -> None:
        self._request("DELETE", f"{TRANSACTIONS}/{tx_id}")

    def _transition(self, tx_id: str, action: str, params: Optional[dict[str, Any]] = None) -> Optional[Transaction]:
        payload = self._request("POST", f"{TRANSACTIONS}/{tx_id}/{action}", params=params)
        return decode_payload(codec.decode_transaction, payload, self.base_currency) if payload else None

    def mark_received(self, tx_id: str) -> Optional[Transaction]:
        return self._transition(tx_id, "received")

    def mark_paid(self, tx_id: str) -> Optional[Transaction]:
        return self._transition(tx_id, "paid")

    def skip_transaction(self, tx_id: str) -> Optional[Transaction]:
        return self._transition(tx_id, "skip")

    def update_confidence(self, tx_id: str, confidence: str) -> Optional[Transaction]:
        return self._transition(tx_id, "confidence", {"confidence": confidence})

    # ------------------------------------------------------------------
    # Forecast
    # ------------------------------------------------------------------
    def get_forecast(
        self,
        days: int,
        safe_mode: bool,
        starting_balance: Optional[float] = None,
        start_date: Optional[date] = None,
        cancel: Optional[CancelToken] = None,
    ) -> ForecastData:
        params = {
            "days": days,
            "safeMode": str(bool(safe_mode)).lower(),
            "startingBalance": starting_balance,
            "startDate": start_date.isoformat() if start_date else None,
        }
        payload = self._request("GET", "/forecast", params=params, cancel=cancel) or {}
        return decode_payload(codec.decode_forecast, payload)

    # ------------------------------------------------------------------
    # Recurring rules
    # ------------------------------------------------------------------
    def list_recurring_rules(self, cancel: Optional[CancelToken] = None) -> list[RecurringRule]:
        payload = self._request("GET", RECURRING_RULES, cancel=cancel) or []
        return decode_list(codec.decode_rule, payload, self.base_currency)

    def get_recurring_rule(self, rule_id: str) -> RecurringRule:
        payload = self._request("GET", f"{RECURRING_RULES}/{rule_id}")
        return decode_payload(codec.decode_rule, payload, self.base_currency)

    def create_recurring_rule(self, payload: dict[str, Any]) -> RecurringRule:
        body = self._request("POST", RECURRING_RULES, json=payload)
        return decode_payload(codec.decode_rule, body, self.base_currency)

    def update_recurring_rule(self, rule_id: str, payload: dict[str, Any]) -> RecurringRule:
        body = self._request("PUT", f"{RECURRING_RULES}/{rule_id}", json=payload)
        return decode_payload(codec.decode_rule, body, self.base_currency)

    def delete_recurring_rule(self, rule_id: str) -> None:
        self._request("DELETE", f"{RECURRING_RULES}/{rule_id}")

    def process_due_rules(self) -> None:
        self._request("POST", f"{RECURRING_RULES}/process")

    # ------------------------------------------------------------------
    # Bank accounts
    # ------------------------------------------------------------------
    def list_bank_accounts(self, cancel: Optional[CancelToken] = None) -> list[BankAccount]:
        return decode_list(codec.decode_bank_account, self._request("GET", BANK_ACCOUNTS, cancel=cancel) or [])

    def create_bank_account(self, account: BankAccount) -> BankAccount:
        payload = self._request("POST", BANK_ACCOUNTS, json=codec.encode_bank_account(account))
        return decode_payload(codec.decode_bank_account, payload)

    def update_bank_account(self, account_id: str, account: BankAccount) -> BankAccount:
        payload = self._request("PUT", f"{BANK_ACCOUNTS}/{account_id}", json=codec.encode_bank_account(account))
        return decode_payload(codec.decode_bank_account, payload)

    def delete_bank_account(self, account_id: str) -> None:
        self._request("DELETE", f"{BANK_ACCOUNTS}/{account_id}")

    # ------------------------------------------------------------------
    # Currencies
    # ------------------------------------------------------------------
    def list_currencies(self, cancel: Optional[CancelToken] = None) -> list[Currency]:
        return decode_list(codec.decode_currency, self._request("GET", CURRENCIES, cancel=cancel) or [])

    def create_currency(self, currency: Currency) -> Currency:
        payload = self._request("POST", CURRENCIES, json=codec.encode_currency(currency))
        return decode_payload(codec.decode_currency, payload)

    def update_currency(self, currency_id: str, currency: Currency) -> Currency:
        payload = self._request("PUT", f"{CURRENCIES}/{currency_id}", json=codec.encode_currency(currency))
        return decode_payload(codec.decode_currency, payload)

    def delete_currency(self, currency_id: str) -> None:
        self._request("DELETE", f"{CURRENCIES}/{currency_id}")

    def set_base_currency(self, currency_id: str) -> Currency:
        return decode_payload(codec.decode_currency, self._request("POST", f"{CURRENCIES}/{currency_id}/base"))

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------
    def list_tags(self, cancel: Optional[CancelToken] = None) -> list[Tag]:
        return decode_list(codec.decode_tag, self._request("GET", TAGS, cancel=cancel) or [])

    def create_tag(self, tag: Tag) -> Tag:
        return decode_payload(codec.decode_tag, self._request("POST", TAGS, json=codec.encode_tag(tag)))

    def update_tag(self, tag_id: str, tag: Tag) -> Tag:
        payload = self._request("PUT", f"{TAGS}/{tag_id}", json=codec.encode_tag(tag))
        return decode_payload(codec.decode_tag, payload)

    def delete_tag(self, tag_id: str) -> None:
        self._request("DELETE", f"{TAGS}/{tag_id}")

    # ------------------------------------------------------------------
    # Reminders, import and settings
    # ------------------------------------------------------------------
    def list_reminders(self, days: int = 7, cancel: Optional[CancelToken] = None) -> list[Reminder]:
        payload = self._request("GET", "/reminders", params={"days": days}, cancel=cancel) or []
        return decode_list(codec.decode_reminder, payload)

    def import_csv(self, filename: str, fileobj: IO[bytes]) -> ImportSummary:
        files = {"file": (filename, fileobj, "text/csv")}
        return decode_payload(codec.decode_import_summary, self._request("POST", "/import/csv", files=files) or {})

    def get_settings(self) -> Optional[dict[str, Any]]:
        """Return the raw settings object; defaults are applied by the caller."""

        return self._request("GET", "/settings")

    def update_settings(self, partial: dict[str, Any], defaults: Optional[UserSettings] = None) -> UserSettings:
        payload = self._request("PUT", "/settings", json=codec.encode_settings(partial))
        return decode_payload(codec.decode_settings, payload, defaults)


def _error_detail(response: requests.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if isinstance(body.get(key), str):
                return body[key]
    return None


def decode_payload(decode: Callable[..., T], payload: Any, *args: Any) -> T:
    """Run ``decode`` over a response body, reporting a malformed body as a transport failure."""

    try:
        return decode(payload, *args)
    except CashflowError:
        raise
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise TransportError(f"Backend returned malformed payload: {exc}") from exc


def decode_list(decode: Callable[..., T], payload: Any, *args: Any) -> list[T]:
    if not isinstance(payload, list):
        raise TransportError(f"Backend returned malformed payload: expected a list, got {type(payload).__name__}")
    return [decode_payload(decode, item, *args) for item in payload]
