"""Conversation history endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from llm_gateway.auth import RequireAuth
from llm_gateway.core import ErrorCode, NotFoundError
from llm_gateway.db import get_db
from llm_gateway.db.models import Conversation, Message
from llm_gateway.db.repositories import (
    get_conversation,
    get_conversation_messages,
    list_user_conversations,
)

router = APIRouter(tags=["conversations"])


def _message_to_response(message: Message) -> dict[str, Any]:
    return {
        "id": message.id,
        "role": message.role,
        "content": message.content,
        "model_used": message.model_used,
        "tokens_used": message.tokens_used,
        "created_at": message.created_at.isoformat(),
    }


def _conversation_summary(conversation: Conversation, message_count: int) -> dict[str, Any]:
    return {
        "id": conversation.id,
        "title": conversation.title or f"Conversation {conversation.id}",
        "created_at": conversation.created_at.isoformat(),
        "message_count": message_count,
    }


@router.get("/conversations")
def list_conversations_route(
    user_identifier: RequireAuth,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = list_user_conversations(db, user_identifier)
    return {"conversations": [_conversation_summary(conv, count) for conv, count in rows]}


@router.get("/conversations/{conversation_id}")
def get_conversation_route(
    conversation_id: str,
    user_identifier: RequireAuth,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    conversation = get_conversation(db, user_identifier, conversation_id)
    if not conversation:
        raise NotFoundError("Conversation not found", code=ErrorCode.CONVERSATION_NOT_FOUND)
    messages = get_conversation_messages(db, conversation_id)
    return {
        "conversation": {
            "id": conversation.id,
            "title": conversation.title,
            "created_at": conversation.created_at.isoformat(),
        },
        "messages": [_message_to_response(msg) for msg in messages],
    }
