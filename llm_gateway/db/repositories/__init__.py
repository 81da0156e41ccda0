"""Repository helpers."""

from llm_gateway.db.repositories.conversation import (
    conversation_has_system_message,
    count_messages,
    create_conversation,
    create_message,
    get_conversation,
    get_conversation_messages,
    list_user_conversations,
)
from llm_gateway.db.repositories.llm_model import (
    DEFAULT_MODELS,
    DatabaseModelCatalog,
    find_enabled_model,
    list_enabled_models,
    seed_default_models,
    upsert_model,
)

__all__ = [
    "DEFAULT_MODELS",
    "DatabaseModelCatalog",
    "conversation_has_system_message",
    "count_messages",
    "create_conversation",
    "create_message",
    "find_enabled_model",
    "get_conversation",
    "get_conversation_messages",
    "list_enabled_models",
    "list_user_conversations",
    "seed_default_models",
    "upsert_model",
]
