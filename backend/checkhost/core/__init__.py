"""Core module for configuration and utilities."""

from checkhost.core.config import settings
from checkhost.core.database import Base, get_db

__all__ = [
    "settings",
    "Base",
    "get_db",
]
