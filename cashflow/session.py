"""Session state for the single authenticated user.

Authentication itself is delegated to an external provider.  The client only
needs something that can hand out the current bearer token, which is what
:class:`SessionProvider` describes.  :class:`SessionStore` wraps a provider
with a lifecycle (created at start-up, cleared on logout, re-initialised on
login) and notifies subscribers whenever the user changes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .config import AppConfig

logger = logging.getLogger(__name__)

Listener = Callable[[Optional["Session"]], None]


@dataclass(frozen=True)
class Session:
    access_token: str
    user_id: str = "me"
    email: Optional[str] = None


class SessionProvider(Protocol):
    def get_session(self) -> Optional[Session]:
        ...


class StaticTokenProvider:
    """Serve a fixed token, typically read from ``CASHFLOW_ACCESS_TOKEN``."""

    def __init__(self, token: Optional[str]) -> None:
        self._session = Session(access_token=token) if token else None

    @classmethod
    def from_config(cls, config: AppConfig) -> "StaticTokenProvider":
        return cls(config.access_token)

    def get_session(self) -> Optional[Session]:
        return self._session


class SessionStore:
    """Holds the current session and tells subscribers when it changes."""

    def __init__(self, provider: SessionProvider, on_expired: Optional[Callable[[], None]] = None) -> None:
        self._provider = provider
        self._session: Optional[Session] = None
        self._listeners: list[Listener] = []
        self.on_expired = on_expired
        self.loading = True

    @property
    def user(self) -> Optional[Session]:
        return self._session

    @property
    def access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None

    def get_session(self) -> Optional[Session]:
        # Lets the store itself act as the provider handed to the client.
        return self._session

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def check_session(self) -> Optional[Session]:
        """Ask the provider for the current session and publish the result."""

        self.loading = True
        try:
            session = self._provider.get_session()
        except Exception:
            logger.exception("Error checking session")
            session = None
        finally:
            self.loading = False
        self._set(session)
        return session

    def login(self, session: Session) -> None:
        self._set(session)

    def logout(self) -> None:
        self._set(None)

    def expire(self) -> None:
        """Drop a session the backend rejected and send the user to login."""

        logger.warning("Session expired; redirecting to login")
        self._set(None)
        if self.on_expired is not None:
            self.on_expired()

    def _set(self, session: Optional[Session]) -> None:
        changed = session != self._session
        self._session = session
        self.loading = False
        if changed:
            for listener in list(self._listeners):
                listener(session)
