"""Repository helpers for the LLM model catalogue."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from llm_gateway.core import ValidationError
from llm_gateway.db.models import PROVIDERS, LlmModel

DEFAULT_MODELS: tuple[tuple[str, str, int], ...] = (
    ("gpt-4o", "openai", 4096),
    ("gpt-4o-mini", "openai", 16384),
    ("gpt-4-turbo", "openai", 4096),
    ("gpt-4", "openai", 8192),
    ("gpt-3.5-turbo", "openai", 4096),
    ("claude-3-5-sonnet-20241022", "anthropic", 8192),
    ("claude-3-5-haiku-20241022", "anthropic", 8192),
    ("claude-3-opus-20240229", "anthropic", 4096),
    ("claude-3-sonnet-20240229", "anthropic", 4096),
    ("claude-3-haiku-20240307", "anthropic", 4096),
    ("gemini-2.0-flash-exp", "google", 8192),
    ("gemini-1.5-pro", "google", 8192),
    ("gemini-1.5-flash", "google", 8192),
    ("gemini-1.5-flash-8b", "google", 8192),
)


def list_enabled_models(db: Session) -> list[LlmModel]:
    """Enabled catalogue entries grouped by provider, then name."""
    stmt = (
        select(LlmModel)
        .where(LlmModel.enabled.is_(True))
        .order_by(LlmModel.provider.asc(), LlmModel.name.asc())
    )
    return list(db.execute(stmt).scalars().all())


def find_enabled_model(db: Session, name: str) -> LlmModel | None:
    """Exact-name lookup restricted to enabled entries."""
    stmt = select(LlmModel).where(LlmModel.name == name, LlmModel.enabled.is_(True))
    return db.execute(stmt).scalar_one_or_none()


def upsert_model(
    db: Session,
    name: str,
    provider: str,
    *,
    enabled: bool = True,
    config: dict[str, Any] | None = None,
) -> LlmModel:
    """Create or update the catalogue entry named ``name``."""
    if provider not in PROVIDERS:
        raise ValidationError(
            f"Unknown provider '{provider}'", details={"allowed": list(PROVIDERS)}
        )
    model = db.execute(select(LlmModel).where(LlmModel.name == name)).scalar_one_or_none()
    if model is None:
        model = LlmModel(name=name)
        db.add(model)
    model.provider = provider
    model.enabled = enabled
    model.config = dict(config or {})
    db.commit()
    db.refresh(model)
    return model


def seed_default_models(db: Session) -> list[LlmModel]:
    """Load the default catalogue, leaving existing entries untouched."""
    models = []
    for name, provider, max_tokens in DEFAULT_MODELS:
        model = db.execute(select(LlmModel).where(LlmModel.name == name)).scalar_one_or_none()
        if model is None:
            model = upsert_model(
                db,
                name,
                provider,
                config={"max_tokens": max_tokens, "supports_streaming": True},
            )
        models.append(model)
    return models


class DatabaseModelCatalog:
    """Model catalogue backed by the ``llm_models`` table."""

    def __init__(self, db: Session):
        self.db = db

    def find_enabled(self, name: str) -> LlmModel | None:
        return find_enabled_model(self.db, name)
