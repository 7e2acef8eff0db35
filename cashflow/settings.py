"""User preference store, reloaded whenever the session changes."""
from __future__ import annotations

import logging
from typing import Any, Optional

from . import codec
from .client import CashflowClient, decode_payload
from .errors import CashflowError, UnauthenticatedError
from .models import UserSettings
from .session import Session, SessionStore

logger = logging.getLogger(__name__)


class SettingsStore:
    """Holds :class:`UserSettings` for the signed-in user.

    The store subscribes to ``session_store`` on construction so a login loads
    the user's preferences and a logout resets them to the defaults.  Call
    :meth:`close` to detach it.
    """

    def __init__(self, client: CashflowClient, session_store: SessionStore) -> None:
        self._client = client
        self._session_store = session_store
        self.settings = UserSettings()
        self.loading = True
        self._unsubscribe = session_store.subscribe(self._on_session_change)

    def close(self) -> None:
        self._unsubscribe()

    def _on_session_change(self, session: Optional[Session]) -> None:
        self.load()

    def load(self) -> UserSettings:
        if self._session_store.user is None:
            self.settings = UserSettings()
            self.loading = False
            return self.settings

        self.loading = True
        try:
            payload = self._client.get_settings()
            self.settings = decode_payload(codec.decode_settings, payload)
        except UnauthenticatedError:
            self.settings = UserSettings()
            self._session_store.expire()
        except CashflowError:
            logger.exception("Failed to load settings")
            self.settings = UserSettings()
        finally:
            self.loading = False
        return self.settings

    refresh = load

    def update(self, **changes: Any) -> UserSettings:
        """Persist ``changes`` and adopt what the backend returns.

        Errors propagate so the settings screen can show its own message.
        """

        try:
            self.settings = self._client.update_settings(changes, defaults=self.settings)
        except UnauthenticatedError:
            self._session_store.expire()
            raise
        except CashflowError:
            logger.exception("Failed to update settings")
            raise
        return self.settings
