"""Tests for engine options, session handling and the conversation store."""

from __future__ import annotations

import pytest
from sqlalchemy import func, make_url, select
from sqlalchemy.orm import Session

from llm_gateway.config import Settings
from llm_gateway.db import (
    Conversation,
    dispose_engine,
    get_engine,
    session_scope,
    verify_database_connection,
)
from llm_gateway.db.engine import engine_options
from llm_gateway.db.repositories import (
    create_conversation,
    create_message,
    list_user_conversations,
)


def test_sqlite_engine_allows_cross_thread_use() -> None:
    options = engine_options(make_url("sqlite:////tmp/gateway.db"))

    assert options["connect_args"] == {"check_same_thread": False}
    assert "pool_size" not in options


def test_server_database_gets_a_sized_pool() -> None:
    options = engine_options(make_url("postgresql://gateway:pw@db/gateway"), debug=True)

    assert options["pool_size"] == 5
    assert options["max_overflow"] == 10
    assert options["echo"] is True
    assert "connect_args" not in options


def test_sqlite_directory_is_created(tmp_path) -> None:
    target = tmp_path / "nested" / "store.db"
    settings = Settings(_env_file=None, database_url=f"sqlite:///{target}")
    dispose_engine()
    try:
        get_engine(settings)
        assert target.parent.is_dir()
    finally:
        dispose_engine()


def test_database_is_reachable(engine) -> None:
    assert verify_database_connection() is True


def test_session_scope_commits(engine, db_session: Session) -> None:
    with session_scope() as session:
        session.add(Conversation(user_identifier="scoped-key"))

    count = db_session.execute(
        select(func.count(Conversation.id)).where(Conversation.user_identifier == "scoped-key")
    ).scalar_one()
    assert count == 1


def test_session_scope_rolls_back_on_error(engine, db_session: Session) -> None:
    with pytest.raises(RuntimeError):
        with session_scope() as session:
            session.add(Conversation(user_identifier="doomed-key"))
            session.flush()
            raise RuntimeError("boom")

    count = db_session.execute(
        select(func.count(Conversation.id)).where(Conversation.user_identifier == "doomed-key")
    ).scalar_one()
    assert count == 0


def test_conversation_listing_counts_messages(db_session: Session) -> None:
    first = create_conversation(db_session, "test-key-0")
    second = create_conversation(db_session, "test-key-0", title="Second")
    create_conversation(db_session, "other-key-")
    create_message(db_session, first.id, "user", "hello")
    create_message(db_session, first.id, "assistant", "hi", model_used="gpt-4o")

    rows = list_user_conversations(db_session, "test-key-0")

    counts = {conversation.id: count for conversation, count in rows}
    assert counts == {first.id: 2, second.id: 0}
