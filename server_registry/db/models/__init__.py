"""
SQLAlchemy models for the registry.

Exposes `Base`, `now_utc`, and the ORM classes.
"""

from .base import Base, now_utc  # re-export

from .servers import ServerVersion

__all__ = [
    "Base",
    "now_utc",
    "ServerVersion",
]
