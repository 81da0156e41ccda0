"""Chat streaming endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from llm_gateway.auth import RequireAuth
from llm_gateway.config import get_settings
from llm_gateway.core import ErrorCode, NotFoundError, request_id_ctx
from llm_gateway.db import get_db
from llm_gateway.providers import ProviderRegistry
from llm_gateway.services import ChatService

router = APIRouter(tags=["chat"])

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    model: str | None = Field(None, min_length=1, max_length=128)
    conversation_id: str | None = None
    system_prompt: str | None = None


class ChatCancelRequest(BaseModel):
    stream_id: str


def get_chat_service(request: Request) -> ChatService:
    service = getattr(request.app.state, "chat_service", None)
    if service:
        return service
    registry = getattr(request.app.state, "provider_registry", None)
    if registry is None:
        registry = ProviderRegistry(get_settings())
        request.app.state.provider_registry = registry
    service = ChatService(registry)
    request.app.state.chat_service = service
    return service


@router.post("/chat")
async def chat_route(
    user_identifier: RequireAuth,
    body: ChatRequest = Body(...),
    chat_service: ChatService = Depends(get_chat_service),
    db: Session = Depends(get_db),
) -> StreamingResponse:
    stream = await chat_service.stream_chat(
        db=db,
        user_identifier=user_identifier,
        message=body.message,
        model=body.model or get_settings().default_model,
        conversation_id=body.conversation_id,
        system_prompt=body.system_prompt,
    )
    headers = dict(SSE_HEADERS)
    request_id = request_id_ctx.get()
    if request_id:
        headers["X-Request-ID"] = request_id
    return StreamingResponse(stream, media_type="text/event-stream", headers=headers)


@router.post("/chat/cancel")
async def chat_cancel_route(
    user_identifier: RequireAuth,
    body: ChatCancelRequest = Body(...),
    chat_service: ChatService = Depends(get_chat_service),
) -> dict[str, Any]:
    cancelled = await chat_service.cancel_stream(body.stream_id, user_identifier)
    if not cancelled:
        raise NotFoundError("Stream not found", code=ErrorCode.STREAM_NOT_FOUND)
    return {"status": "cancelled", "stream_id": body.stream_id}
