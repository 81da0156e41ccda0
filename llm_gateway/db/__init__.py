"""Database models, engine, and session management."""

from llm_gateway.db.base import Base, TimestampMixin
from llm_gateway.db.engine import dispose_engine, get_engine, verify_database_connection
from llm_gateway.db.models import Conversation, LlmModel, Message
from llm_gateway.db.session import (
    get_db,
    get_session_factory,
    reset_session_factory,
    session_scope,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Engine
    "get_engine",
    "verify_database_connection",
    "dispose_engine",
    # Session
    "get_db",
    "get_session_factory",
    "reset_session_factory",
    "session_scope",
    # Models
    "Conversation",
    "LlmModel",
    "Message",
]
