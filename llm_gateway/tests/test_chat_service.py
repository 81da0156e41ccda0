"""Tests for the chat orchestrator: token relay, persistence and cancellation."""

from __future__ import annotations

import asyncio
import json

import pytest
from sqlalchemy.orm import Session

from conftest import AttemptScriptedProvider, retrying_driver
from llm_gateway.core import ErrorCode, NotFoundError, metrics
from llm_gateway.db.repositories import count_messages, get_conversation_messages
from llm_gateway.providers import (
    ChatMessage,
    ProviderRegistry,
    ProviderType,
    RateLimitError,
    StreamingError,
    StreamToken,
)
from llm_gateway.services import ChatService
from llm_gateway.services.chat_service import ActiveStreamManager


def parse_frames(frames: list[str]) -> list[dict]:
    events = []
    for frame in frames:
        assert frame.startswith("data: ") and frame.endswith("\n\n")
        events.append(json.loads(frame[len("data: "):]))
    return events


async def collect(stream) -> list[dict]:
    return parse_frames([frame async for frame in stream])


@pytest.mark.asyncio
async def test_run_turn_relays_tokens_in_order(
    registry: ProviderRegistry, scripted_provider
) -> None:
    provider = scripted_provider(["The ", "quick ", "", "fox"])
    registry.providers[ProviderType.OPENAI] = provider
    service = ChatService(registry)
    relayed: list[str] = []

    async def sink(token: StreamToken) -> None:
        relayed.append(token.text)

    result = await service.run_turn(
        [ChatMessage("system", "sys"), ChatMessage("user", "go")], "gpt-4o", sink
    )

    assert relayed == ["The ", "quick ", "fox"]
    assert result.content == "".join(relayed)
    assert result.provider == "openai"
    assert result.model == "gpt-4o"
    assert result.latency_ms >= 0
    system, turns, model = provider.calls[0]
    assert system == "sys"
    assert [t.role for t in turns] == ["user"]


@pytest.mark.asyncio
async def test_retry_after_partial_output_keeps_only_final_attempt(
    registry: ProviderRegistry,
) -> None:
    provider = AttemptScriptedProvider(
        [(["Hel"], StreamingError("connection reset")), (["Hel", "lo"], None)],
        retry=retrying_driver(3),
    )
    registry.providers[ProviderType.OPENAI] = provider
    relayed: list[str] = []

    async def sink(token: StreamToken) -> None:
        relayed.append(token.text)

    result = await ChatService(registry).run_turn([ChatMessage("user", "hi")], "gpt-4o", sink)

    assert len(provider.calls) == 2
    assert relayed == ["Hel", "Hel", "lo"]
    assert result.content == "Hello"


@pytest.mark.asyncio
async def test_run_turn_propagates_taxonomy_error(
    registry: ProviderRegistry, scripted_provider
) -> None:
    error = RateLimitError("429", provider="anthropic")
    registry.providers[ProviderType.ANTHROPIC] = scripted_provider(
        ["partial"], error=error, provider_type=ProviderType.ANTHROPIC
    )
    service = ChatService(registry)

    async def sink(token: StreamToken) -> None:
        return None

    with pytest.raises(RateLimitError) as exc:
        await service.run_turn([ChatMessage("user", "hi")], "claude-3-haiku-20240307", sink)

    assert exc.value is error


@pytest.mark.asyncio
async def test_cancel_event_stops_relay(registry: ProviderRegistry, scripted_provider) -> None:
    registry.providers[ProviderType.OPENAI] = scripted_provider(["a", "b", "c"])
    service = ChatService(registry)
    cancel_event = asyncio.Event()
    relayed: list[str] = []

    async def sink(token: StreamToken) -> None:
        relayed.append(token.text)
        cancel_event.set()

    with pytest.raises(asyncio.CancelledError):
        await service.run_turn(
            [ChatMessage("user", "hi")], "gpt-4o", sink, cancel_event=cancel_event
        )

    assert relayed == ["a"]


@pytest.mark.asyncio
async def test_stream_chat_persists_exactly_what_was_streamed(
    registry: ProviderRegistry, db_session: Session, scripted_provider
) -> None:
    registry.providers[ProviderType.OPENAI] = scripted_provider(["Hel", "lo", "", " there"])
    service = ChatService(registry)

    events = await collect(
        await service.stream_chat(
            db=db_session,
            user_identifier="test-key-0",
            message="Hi",
            model="gpt-4o",
            system_prompt="Be kind.",
        )
    )

    assert events[0]["type"] == "metadata"
    assert events[0]["model"] == "gpt-4o"
    conversation_id = events[0]["conversation_id"]
    tokens = [e["text"] for e in events if e["type"] == "token" and not e["done"]]
    assert tokens == ["Hel", "lo", " there"]
    completion = events[-2]
    assert completion["type"] == "token" and completion["done"] is True
    assert completion["text"] == ""
    assert isinstance(completion["latency_ms"], float)
    assert events[-1] == {"type": "done"}

    messages = get_conversation_messages(db_session, conversation_id)
    assert [m.role for m in messages] == ["system", "user", "assistant"]
    assert messages[-1].content == "".join(tokens)
    assert messages[-1].model_used == "gpt-4o"
    assert metrics.snapshot()["gauges"]["active_streams"] == 0


@pytest.mark.asyncio
async def test_system_prompt_is_stored_once(
    registry: ProviderRegistry, db_session: Session, scripted_provider
) -> None:
    provider = scripted_provider(["ok"])
    registry.providers[ProviderType.OPENAI] = provider
    service = ChatService(registry)

    first = await collect(
        await service.stream_chat(
            db=db_session,
            user_identifier="test-key-0",
            message="one",
            model="gpt-4o",
            system_prompt="Be kind.",
        )
    )
    conversation_id = first[0]["conversation_id"]
    await collect(
        await service.stream_chat(
            db=db_session,
            user_identifier="test-key-0",
            message="two",
            model="gpt-4o",
            conversation_id=conversation_id,
            system_prompt="Be kind.",
        )
    )

    roles = [m.role for m in get_conversation_messages(db_session, conversation_id)]
    assert roles == ["system", "user", "assistant", "user", "assistant"]
    assert count_messages(db_session, conversation_id) == 5
    system, turns, _ = provider.calls[-1]
    assert system == "Be kind."
    assert [t.content for t in turns] == ["one", "ok", "two"]


@pytest.mark.asyncio
async def test_stream_chat_error_emits_safe_message_and_persists_nothing(
    registry: ProviderRegistry, db_session: Session, scripted_provider
) -> None:
    registry.providers[ProviderType.OPENAI] = scripted_provider(
        ["partial"], error=RateLimitError("upstream said 429 for org-123", retry_after=20)
    )
    service = ChatService(registry)

    events = await collect(
        await service.stream_chat(
            db=db_session, user_identifier="test-key-0", message="Hi", model="gpt-4o"
        )
    )

    error = events[-1]
    assert error["type"] == "error"
    assert error["code"] == ErrorCode.PROVIDER_RATE_LIMITED.value
    assert error["message"] == "AI service rate limit reached. Please try again in 20 seconds."
    assert error["retry_after"] == 20
    assert "org-123" not in json.dumps(events)
    messages = get_conversation_messages(db_session, events[0]["conversation_id"])
    assert [m.role for m in messages] == ["user"]


@pytest.mark.asyncio
async def test_stream_chat_unknown_conversation(
    registry: ProviderRegistry, db_session: Session
) -> None:
    service = ChatService(registry)

    with pytest.raises(NotFoundError) as exc:
        await service.stream_chat(
            db=db_session,
            user_identifier="test-key-0",
            message="Hi",
            model="gpt-4o",
            conversation_id="missing",
        )

    assert exc.value.code == ErrorCode.CONVERSATION_NOT_FOUND


@pytest.mark.asyncio
async def test_stream_manager_cancel_requires_owner() -> None:
    manager = ActiveStreamManager()
    cancel_event = asyncio.Event()
    await manager.register("s1", "owner", "c1", cancel_event, None)

    assert await manager.cancel("s1", "intruder") is False
    assert not cancel_event.is_set()
    assert await manager.cancel("s1", "owner") is True
    assert cancel_event.is_set()
    assert await manager.unregister("s1") is not None
    assert await manager.cancel("s1", "owner") is False


@pytest.mark.asyncio
async def test_stream_chat_persists_only_successful_attempt(
    registry: ProviderRegistry, db_session: Session
) -> None:
    registry.providers[ProviderType.OPENAI] = AttemptScriptedProvider(
        [(["Hel"], StreamingError("connection reset")), (["Hel", "lo"], None)],
        retry=retrying_driver(3),
    )
    service = ChatService(registry)

    events = await collect(
        await service.stream_chat(
            db=db_session, user_identifier="test-key-0", message="Hi", model="gpt-4o"
        )
    )

    assert events[-1] == {"type": "done"}
    messages = get_conversation_messages(db_session, events[0]["conversation_id"])
    assert [m.role for m in messages] == ["user", "assistant"]
    assert messages[-1].content == "Hello"
    assert metrics.snapshot()["counters"]["provider_retries_total"] == 1


@pytest.mark.asyncio
async def test_stream_manager_cancel_cancels_owned_task() -> None:
    manager = ActiveStreamManager()
    cancel_event = asyncio.Event()
    task = asyncio.create_task(asyncio.sleep(60))
    await manager.register("s1", "owner", "c1", cancel_event, task)

    assert await manager.cancel("s1", "owner") is True

    with pytest.raises(asyncio.CancelledError):
        await task
    assert task.cancelled()
    assert cancel_event.is_set()
