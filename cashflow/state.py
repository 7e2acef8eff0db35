"""Loadable state machine shared by every view-model.

A :class:`Resource` moves ``IDLE -> LOADING -> SUCCESS | ERROR``.  Each call to
:meth:`Resource.begin` hands out a :class:`Ticket` with a fresh generation
number and cancels the previous ticket, so a response that arrives after a
newer request was issued is dropped instead of overwriting fresher data.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from .errors import CashflowError, RequestCancelled, UnauthenticatedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Confirm = Callable[[str], bool]


class Status(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class CancelToken:
    """Flag checked by the gateway before it hands a response back."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelled("Request superseded by a newer one")


@dataclass(frozen=True)
class Ticket:
    generation: int
    params: Any
    cancel: CancelToken = field(default_factory=CancelToken, compare=False)


class Resource(Generic[T]):
    """Holds the latest data for one logical remote resource."""

    def __init__(self, name: str, empty: Optional[T] = None) -> None:
        self.name = name
        self._empty = empty
        self._lock = threading.Lock()
        self._generation = 0
        self._current: Optional[Ticket] = None
        self.status = Status.IDLE
        self.data: Optional[T] = empty
        self.error: Optional[str] = None
        self.params: Any = None

    @property
    def loading(self) -> bool:
        return self.status is Status.LOADING

    def begin(self, params: Any = None) -> Ticket:
        with self._lock:
            if self._current is not None:
                self._current.cancel.cancel()
            self._generation += 1
            ticket = Ticket(self._generation, params)
            self._current = ticket
            self.status = Status.LOADING
            self.params = params
            self.error = None
            return ticket

    def is_current(self, ticket: Ticket) -> bool:
        return self._current is ticket

    def resolve(self, ticket: Ticket, data: T) -> bool:
        with self._lock:
            if not self.is_current(ticket):
                logger.debug("Discarding stale %s response (generation %s)", self.name, ticket.generation)
                return False
            self.data = data
            self.status = Status.SUCCESS
            self.error = None
            self._current = None
            return True

    def fail(self, ticket: Ticket, reason: Optional[str]) -> bool:
        with self._lock:
            if not self.is_current(ticket):
                logger.debug("Discarding stale %s failure (generation %s)", self.name, ticket.generation)
                return False
            self.data = self._empty
            self.status = Status.ERROR
            self.error = reason
            self._current = None
            return True

    def reset(self) -> None:
        with self._lock:
            if self._current is not None:
                self._current.cancel.cancel()
            self._current = None
            self.status = Status.IDLE
            self.data = self._empty
            self.error = None
            self.params = None


def load_into(
    resource: Resource[T],
    fetch: Callable[[CancelToken], T],
    *,
    params: Any = None,
    error_message: str,
    on_unauthenticated: Optional[Callable[[], None]] = None,
) -> bool:
    """Run ``fetch`` under a fresh ticket and record the outcome on ``resource``.

    Returns ``True`` only when the data was stored.  Failures are logged and
    turned into ``error_message``; an unauthenticated failure leaves no inline
    message and calls ``on_unauthenticated`` instead.
    """

    ticket = resource.begin(params)
    try:
        data = fetch(ticket.cancel)
    except RequestCancelled:
        logger.debug("%s request cancelled", resource.name)
        return False
    except UnauthenticatedError:
        logger.warning("%s request rejected: no valid session", resource.name)
        if resource.fail(ticket, None) and on_unauthenticated is not None:
            on_unauthenticated()
        return False
    except CashflowError:
        logger.exception("Failed to fetch %s", resource.name)
        resource.fail(ticket, error_message)
        return False
    return resource.resolve(ticket, data)
