"""Recurring rule management: list, edit form, expiration policy.

Rules whose start date lies more than two years back are *expired*.  They
stay listed and can still be deleted, but the edit form is read-only and
refuses to submit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Optional

from dateutil.relativedelta import relativedelta

from . import codec
from .client import CashflowClient
from .errors import CashflowError, UnauthenticatedError, ValidationError
from .models import EXPENSE, INCOME, RecurringRule
from .session import SessionStore
from .state import Confirm, Resource, load_into

logger = logging.getLogger(__name__)

EXPIRY = relativedelta(years=2)
CENTS = Decimal("0.01")
LOAD_ERROR = "Failed to load recurring rules"
SAVE_ERROR = "Failed to save rule"
EXPIRED_BADGE = "Expired"
EXPIRED_BANNER = (
    "This rule started more than two years ago and is now read-only. "
    "Delete it and create a new rule to change it."
)


def is_expired(rule: RecurringRule, today: date) -> bool:
    return rule.start_date < today - EXPIRY


def convert_to_base(amount: Any, exchange_rate: Any) -> float:
    """Divide ``amount`` by ``exchange_rate`` and round half-up to cents.

    ``exchange_rate`` is how many units of the foreign currency one unit of
    the base currency buys, so ``convert_to_base(90, "1.10") == 81.82``.
    """

    try:
        value = Decimal(str(amount))
        rate = Decimal(str(exchange_rate))
    except InvalidOperation as exc:
        raise ValidationError("Amount and exchange rate must be numbers") from exc
    if rate <= 0:
        raise ValidationError("Exchange rate must be greater than zero")
    return float((value / rate).quantize(CENTS, rounding=ROUND_HALF_UP))


def _parse_amount(text: str) -> Decimal:
    try:
        value = Decimal(str(text).strip())
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid amount: {text!r}") from exc
    if not value.is_finite() or value <= 0:
        raise ValidationError("Amount must be greater than zero")
    return value


class RecurringRuleForm:
    """Edit state for one rule, blank when ``rule`` is ``None``."""

    def __init__(
        self,
        client: CashflowClient,
        rule: Optional[RecurringRule] = None,
        session_store: Optional[SessionStore] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._session_store = session_store
        self._today = today
        self.base_currency = client.base_currency
        self.error: Optional[str] = None
        self.rule = rule
        if rule is None:
            self.reset()
        else:
            self.load(rule)

    def reset(self) -> None:
        self.rule = None
        self.description = ""
        self.amount = ""
        self.type = EXPENSE
        self.frequency = "MONTHLY"
        self.is_end_of_month = False
        self.start_date = self._today()
        self.currency_code = self.base_currency
        self.exchange_rate = 1.0
        self.bank_account_id: Optional[str] = None
        self.tag_ids: list[str] = []
        self.confidence: Optional[str] = None
        self.error = None
        self.expired = False

    def load(self, rule: RecurringRule) -> None:
        self.reset()
        self.rule = rule
        self.description = rule.description
        self.type = rule.type
        self.frequency = rule.frequency
        self.is_end_of_month = rule.is_end_of_month
        self.start_date = rule.start_date
        self.bank_account_id = rule.bank_account_id
        self.tag_ids = list(rule.tag_ids)
        self.confidence = rule.confidence
        if rule.original_amount and rule.original_currency_code:
            self.amount = amount_input(rule.original_amount)
            self.currency_code = rule.original_currency_code
            self.exchange_rate = rule.exchange_rate or 1.0
        else:
            # Older rules stored the foreign amount directly.
            self.amount = amount_input(rule.amount)
            self.currency_code = rule.currency_code
            self.exchange_rate = (rule.exchange_rate or 1.0) if rule.currency_code != self.base_currency else 1.0
        self.expired = is_expired(rule, self._today())

    # Presentation ---------------------------------------------------------
    @property
    def read_only(self) -> bool:
        return self.expired

    @property
    def can_save(self) -> bool:
        return not self.expired

    @property
    def badge(self) -> Optional[str]:
        return EXPIRED_BADGE if self.expired else None

    @property
    def banner(self) -> Optional[str]:
        return EXPIRED_BANNER if self.expired else None

    @property
    def foreign_currency(self) -> bool:
        return self.currency_code != self.base_currency

    @property
    def base_amount(self) -> Optional[float]:
        """Preview of the amount that will be stored, or ``None`` if unparsable."""

        try:
            if self.foreign_currency:
                return convert_to_base(_parse_amount(self.amount), self.exchange_rate)
            return float(_parse_amount(self.amount))
        except ValidationError:
            return None

    # Submission -----------------------------------------------------------
    def build_payload(self) -> dict[str, Any]:
        amount = _parse_amount(self.amount)
        if self.type not in (INCOME, EXPENSE):
            raise ValidationError(f"Unknown rule type: {self.type!r}")
        payload: dict[str, Any] = {
            "description": self.description,
            "type": self.type,
            "frequency": self.frequency,
            "isEndOfMonth": self.is_end_of_month if self.frequency == "MONTHLY" else False,
            "startDate": codec.format_day(self.start_date),
            "currencyCode": self.base_currency,
            "bankAccountId": self.bank_account_id,
            "tagIds": list(self.tag_ids),
            "active": True,
        }
        if self.type == INCOME and self.confidence:
            payload["confidence"] = self.confidence
        if self.foreign_currency:
            payload["amount"] = convert_to_base(amount, self.exchange_rate)
            payload["exchangeRate"] = float(self.exchange_rate)
            payload["originalAmount"] = float(amount)
            payload["originalCurrencyCode"] = self.currency_code
        else:
            payload["amount"] = float(amount)
            payload["exchangeRate"] = 1.0
        return {key: value for key, value in payload.items() if value is not None}

    def submit(self) -> Optional[RecurringRule]:
        """Create or update the rule.

        Raises :class:`ValidationError` without touching the network when the
        rule is expired or the input is invalid.  Backend failures are logged
        and returned as ``None`` with :attr:`error` set.
        """

        if self.expired:
            raise ValidationError("Expired rules cannot be edited")
        payload = self.build_payload()
        self.error = None
        try:
            if self.rule is not None and self.rule.id:
                return self._client.update_recurring_rule(self.rule.id, payload)
            return self._client.create_recurring_rule(payload)
        except UnauthenticatedError:
            if self._session_store is not None:
                self._session_store.expire()
            return None
        except CashflowError:
            logger.exception(SAVE_ERROR)
            self.error = SAVE_ERROR
            return None


def amount_input(value: float) -> str:
    return format(Decimal(str(value)).normalize(), "f")


@dataclass(frozen=True)
class RuleEntry:
    rule: RecurringRule
    expired: bool


class RecurringRulesViewModel:
    def __init__(
        self,
        client: CashflowClient,
        session_store: Optional[SessionStore] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._session_store = session_store
        self._today = today
        self.resource: Resource[tuple[RecurringRule, ...]] = Resource("recurring rules", empty=())
        self.action_error: Optional[str] = None
        self.notice: Optional[str] = None

    def load(self) -> bool:
        return load_into(
            self.resource,
            lambda cancel: tuple(self._client.list_recurring_rules(cancel=cancel)),
            error_message=LOAD_ERROR,
            on_unauthenticated=self._expire,
        )

    @property
    def error(self) -> Optional[str]:
        return self.resource.error

    def entries(self) -> list[RuleEntry]:
        today = self._today()
        return [RuleEntry(rule, is_expired(rule, today)) for rule in self.resource.data or ()]

    def form(self, rule: Optional[RecurringRule] = None) -> RecurringRuleForm:
        return RecurringRuleForm(self._client, rule, self._session_store, self._today)

    def save(self, form: RecurringRuleForm) -> bool:
        saved = form.submit()
        if saved is None:
            return False
        self.load()
        return True

    def delete(self, rule_id: str, confirm: Confirm) -> bool:
        if not confirm("Are you sure you want to delete this rule?"):
            return False
        return self._act("delete rule", lambda: self._client.delete_recurring_rule(rule_id))

    def process_due(self) -> bool:
        done = self._act("process rules", self._client.process_due_rules)
        if done:
            self.notice = "Due rules processed successfully"
        return done

    def _act(self, action: str, call: Callable[[], object]) -> bool:
        self.action_error = None
        self.notice = None
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
