"""Database utilities for the learning path service."""

from .session import (
    create_all,
    dispose_engine,
    get_engine,
    get_session_factory,
    session_scope,
)

__all__ = [
    "create_all",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "session_scope",
]
