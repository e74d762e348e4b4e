"""
Store Module.

Transactional storage of flows, screens and navigation edges.
"""

from typing import Optional

from ..config import Settings, get_settings
from .base import FlowTransaction, ScreenStore
from .memory import InMemoryScreenStore
from .sql import SqlScreenStore


def create_store(settings: Optional[Settings] = None) -> ScreenStore:
    """Create the screen store selected by settings."""
    settings = settings or get_settings()
    if settings.storage.backend == "sql":
        return SqlScreenStore(settings.storage.database_url, echo=settings.storage.echo)
    return InMemoryScreenStore()


__all__ = [
    "FlowTransaction",
    "ScreenStore",
    "InMemoryScreenStore",
    "SqlScreenStore",
    "create_store",
]
