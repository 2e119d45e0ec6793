"""Database module for NitroAuth."""

from nitroauth.db.base import Base
from nitroauth.db.session import get_db, get_session_factory, engine, AsyncSessionLocal

__all__ = ["Base", "get_db", "get_session_factory", "engine", "AsyncSessionLocal"]
