"""Client and view-models for the personal cash-flow backend."""
from __future__ import annotations

from .api import app

__all__ = ["app"]
