"""Chat orchestration service with SSE streaming and cancellation."""

from __future__ import annotations

import asyncio
import json
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from llm_gateway.core import (
    AppError,
    ErrorCode,
    NotFoundError,
    bind_turn,
    get_logger,
    metrics,
    stream_id_ctx,
)
from llm_gateway.db.repositories import (
    DatabaseModelCatalog,
    conversation_has_system_message,
    create_conversation,
    create_message,
    get_conversation,
    get_conversation_messages,
)
from llm_gateway.providers import (
    ChatMessage,
    LLMError,
    ProviderRegistry,
    ProviderSelector,
    StreamToken,
)
from llm_gateway.providers.selector import ModelCatalog

logger = get_logger(__name__)

_CANCELLED = object()


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one successful chat turn."""

    content: str
    latency_ms: float
    model: str
    provider: str


@dataclass
class ActiveStream:
    """Metadata for an in-flight chat stream."""

    stream_id: str
    user_identifier: str
    conversation_id: str
    started_at: datetime
    cancel_event: asyncio.Event
    task: asyncio.Task | None = None


class ActiveStreamManager:
    """Tracks active SSE streams so they can be cancelled."""

    def __init__(self) -> None:
        self._streams: dict[str, ActiveStream] = {}
        self._lock = asyncio.Lock()

    async def register(
        self,
        stream_id: str,
        user_identifier: str,
        conversation_id: str,
        cancel_event: asyncio.Event,
        task: asyncio.Task | None,
    ) -> None:
        """Track a new stream."""
        async with self._lock:
            self._streams[stream_id] = ActiveStream(
                stream_id=stream_id,
                user_identifier=user_identifier,
                conversation_id=conversation_id,
                started_at=datetime.now(UTC),
                cancel_event=cancel_event,
                task=task,
            )
            metrics.set_gauge("active_streams", float(len(self._streams)))

    async def unregister(self, stream_id: str) -> ActiveStream | None:
        """Stop tracking a stream once it completes."""
        async with self._lock:
            stream = self._streams.pop(stream_id, None)
            metrics.set_gauge("active_streams", float(len(self._streams)))
        return stream

    async def cancel(self, stream_id: str, user_identifier: str) -> bool:
        """Signal cancellation for a running stream if it belongs to the requester."""
        async with self._lock:
            stream = self._streams.get(stream_id)
            if not stream or stream.user_identifier != user_identifier:
                return False
            stream.cancel_event.set()
            if stream.task and not stream.task.done():
                stream.task.cancel()
        return True

    async def get(self, stream_id: str) -> ActiveStream | None:
        async with self._lock:
            return self._streams.get(stream_id)


class ChatService:
    """Drives chat turns: provider selection, token relay, and persistence."""

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry
        self.manager = ActiveStreamManager()

    async def run_turn(
        self,
        history: Sequence[ChatMessage],
        model: str,
        on_token: Callable[[StreamToken], Awaitable[None]],
        *,
        catalog: ModelCatalog | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> TurnResult:
        """
        Run one turn against the provider serving ``model``.

        Tokens reach ``on_token`` in the order the provider emits them and are
        accumulated into ``TurnResult.content``. If a retryable failure occurs
        after some tokens were relayed, the retried attempt relays from the
        start again; the content holds only the successful attempt's text.

        Raises:
            LLMError: The final taxonomy error; nothing is persisted here.
            asyncio.CancelledError: ``cancel_event`` was set mid-stream.
        """
        provider = ProviderSelector(self.registry, catalog).resolve(model)
        parts: list[str] = []

        async def relay(token: StreamToken) -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise asyncio.CancelledError()
            parts.append(token.text)
            await on_token(token)

        start = time.perf_counter()
        with bind_turn(provider=provider.provider_type.value, model=model):
            await provider.stream_completion(history, model, relay, on_attempt=parts.clear)
        latency_ms = round((time.perf_counter() - start) * 1000, 2)

        return TurnResult(
            content="".join(parts),
            latency_ms=latency_ms,
            model=model,
            provider=provider.provider_type.value,
        )

    async def stream_chat(
        self,
        *,
        db: Session,
        user_identifier: str,
        message: str,
        model: str,
        conversation_id: str | None = None,
        system_prompt: str | None = None,
    ) -> AsyncIterator[str]:
        """
        Record the user turn and return an SSE event stream for the reply.

        The assistant message is stored only when the provider call succeeds.
        """
        if conversation_id:
            conversation = get_conversation(db, user_identifier, conversation_id)
            if not conversation:
                raise NotFoundError(
                    "Conversation not found", code=ErrorCode.CONVERSATION_NOT_FOUND
                )
        else:
            conversation = create_conversation(db, user_identifier)
        conversation_id = conversation.id

        if system_prompt and not conversation_has_system_message(db, conversation_id):
            create_message(db, conversation_id, "system", system_prompt)
        create_message(db, conversation_id, "user", message)

        history = [
            ChatMessage(role=stored.role, content=stored.content)
            for stored in get_conversation_messages(db, conversation_id)
        ]
        catalog = DatabaseModelCatalog(db)

        stream_id = str(uuid.uuid4())
        cancel_event = asyncio.Event()
        queue: asyncio.Queue[Any] = asyncio.Queue()

        async def produce() -> None:
            try:
                result = await self.run_turn(
                    history,
                    model,
                    queue.put,
                    catalog=catalog,
                    cancel_event=cancel_event,
                )
            except asyncio.CancelledError:
                queue.put_nowait(_CANCELLED)
                raise
            except Exception as exc:
                queue.put_nowait(exc)
            else:
                queue.put_nowait(result)

        async def event_generator() -> AsyncIterator[str]:
            stream_token = stream_id_ctx.set(stream_id)
            with bind_turn(conversation_id=conversation_id, model=model):
                producer = asyncio.create_task(produce())
            await self.manager.register(
                stream_id, user_identifier, conversation_id, cancel_event, producer
            )
            try:
                yield self._format_sse_event(
                    {
                        "type": "metadata",
                        "conversation_id": conversation_id,
                        "model": model,
                        "stream_id": stream_id,
                    }
                )

                while True:
                    item = await queue.get()
                    if isinstance(item, StreamToken):
                        yield self._format_sse_event(
                            {"type": "token", "text": item.text, "done": False}
                        )
                        continue

                    if isinstance(item, TurnResult):
                        create_message(
                            db,
                            conversation_id,
                            "assistant",
                            item.content,
                            model_used=item.model,
                        )
                        logger.info(
                            "Chat turn completed",
                            data={
                                "conversation_id": conversation_id,
                                "model": item.model,
                                "provider": item.provider,
                                "latency_ms": item.latency_ms,
                            },
                        )
                        yield self._format_sse_event(
                            {
                                "type": "token",
                                "text": "",
                                "done": True,
                                "latency_ms": item.latency_ms,
                            }
                        )
                        yield self._format_sse_event({"type": "done"})
                    elif item is _CANCELLED:
                        logger.info(
                            "Chat stream cancelled",
                            data={"stream_id": stream_id, "conversation_id": conversation_id},
                        )
                        yield self._format_sse_event({"type": "done", "cancelled": True})
                    else:
                        raise item
                    return
            except LLMError as exc:
                logger.warning(
                    "Provider error during chat stream",
                    data={"stream_id": stream_id, "code": exc.code.value, "kind": exc.kind.value},
                )
                payload: dict[str, Any] = {
                    "type": "error",
                    "code": exc.code.value,
                    "message": exc.user_message,
                }
                if exc.retry_after is not None:
                    payload["retry_after"] = exc.retry_after
                yield self._format_sse_event(payload)
            except AppError as exc:
                logger.warning(
                    "Application error during chat stream",
                    data={"stream_id": stream_id, "code": exc.code.value},
                )
                yield self._format_sse_event(
                    {"type": "error", "code": exc.code.value, "message": exc.message}
                )
            except Exception as exc:
                logger.exception(
                    "Unexpected error during chat stream",
                    exc_info=exc,
                    data={"stream_id": stream_id},
                )
                yield self._format_sse_event(
                    {
                        "type": "error",
                        "code": ErrorCode.INTERNAL_ERROR.value,
                        "message": "An unexpected error occurred",
                    }
                )
            finally:
                # Client went away or the stream ended: stop the provider call.
                if not producer.done():
                    producer.cancel()
                stream_meta = await self.manager.unregister(stream_id)
                stream_id_ctx.reset(stream_token)
                if stream_meta:
                    elapsed = (datetime.now(UTC) - stream_meta.started_at).total_seconds()
                    metrics.observe("stream_duration_seconds", elapsed)

        return event_generator()

    async def cancel_stream(self, stream_id: str, user_identifier: str) -> bool:
        """Cancel an active stream if it belongs to the requesting caller."""
        return await self.manager.cancel(stream_id, user_identifier)

    @staticmethod
    def _format_sse_event(payload: dict[str, Any]) -> str:
        """Serialize a payload as one SSE ``data:`` frame."""
        data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        return f"data: {data}\n\n"
