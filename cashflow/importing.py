"""Bulk CSV import; the backend parses the file."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .client import CashflowClient
from .errors import CashflowError, UnauthenticatedError, ValidationError
from .models import ImportSummary
from .session import SessionStore

logger = logging.getLogger(__name__)


class ImportViewModel:
    def __init__(self, client: CashflowClient, session_store: Optional[SessionStore] = None) -> None:
        self._client = client
        self._session_store = session_store
        self.summary: Optional[ImportSummary] = None
        self.error: Optional[str] = None
        self.uploading = False

    def upload(self, path: Path | str) -> Optional[ImportSummary]:
        path = Path(path)
        if path.suffix.lower() != ".csv":
            raise ValidationError("Please select a CSV file")
        if not path.is_file():
            raise ValidationError(f"File not found: {path}")

        self.error = None
        self.summary = None
        self.uploading = True
        try:
            with path.open("rb") as handle:
                self.summary = self._client.import_csv(path.name, handle)
        except UnauthenticatedError:
            if self._session_store is not None:
                self._session_store.expire()
        except CashflowError:
            logger.exception("CSV import failed for %s", path.name)
            self.error = "Failed to import file"
        finally:
            self.uploading = False
        return self.summary
