"""Application services."""

from llm_gateway.services.chat_service import (
    ActiveStreamManager,
    ChatService,
    TurnResult,
)

__all__ = ["ActiveStreamManager", "ChatService", "TurnResult"]
