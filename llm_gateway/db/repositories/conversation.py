"""Repository helpers for conversations and messages."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from llm_gateway.db.models import Conversation, Message

RECENT_CONVERSATIONS_LIMIT = 50


def create_conversation(
    db: Session, user_identifier: str, title: str | None = None
) -> Conversation:
    """Create a new conversation for the given caller."""
    conversation = Conversation(
        user_identifier=user_identifier,
        title=title.strip() if title and title.strip() else None,
    )
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    return conversation


def get_conversation(
    db: Session, user_identifier: str, conversation_id: str
) -> Conversation | None:
    """Fetch a conversation owned by the caller."""
    stmt = select(Conversation).where(
        Conversation.id == conversation_id,
        Conversation.user_identifier == user_identifier,
    )
    return db.execute(stmt).scalar_one_or_none()


def list_user_conversations(
    db: Session, user_identifier: str, limit: int = RECENT_CONVERSATIONS_LIMIT
) -> list[tuple[Conversation, int]]:
    """Most recent conversations for the caller, each with its message count."""
    message_count = (
        select(func.count(Message.id))
        .where(Message.conversation_id == Conversation.id)
        .correlate(Conversation)
        .scalar_subquery()
    )
    stmt = (
        select(Conversation, message_count)
        .where(Conversation.user_identifier == user_identifier)
        .order_by(Conversation.created_at.desc())
        .limit(limit)
    )
    return [(conversation, count) for conversation, count in db.execute(stmt).all()]


def create_message(
    db: Session,
    conversation_id: str,
    role: str,
    content: str,
    *,
    model_used: str | None = None,
    tokens_used: int | None = None,
) -> Message:
    """Insert a chat message."""
    message = Message(
        conversation_id=conversation_id,
        role=role,
        content=content,
        model_used=model_used,
        tokens_used=tokens_used,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def get_conversation_messages(db: Session, conversation_id: str) -> list[Message]:
    """Get all messages for a conversation in creation order."""
    stmt = (
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def conversation_has_system_message(db: Session, conversation_id: str) -> bool:
    stmt = select(Message.id).where(
        Message.conversation_id == conversation_id, Message.role == "system"
    )
    return db.execute(stmt.limit(1)).first() is not None


def count_messages(db: Session, conversation_id: str) -> int:
    stmt = select(func.count(Message.id)).where(Message.conversation_id == conversation_id)
    return db.execute(stmt).scalar_one()
