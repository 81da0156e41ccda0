"""Shared fixtures: isolated settings, a temporary SQLite database, and stub providers."""

from __future__ import annotations

import gc
from collections.abc import AsyncIterator, Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from llm_gateway.config import Settings, get_settings
from llm_gateway.core import metrics
from llm_gateway.db import Base, dispose_engine, get_db, reset_session_factory
from llm_gateway.providers import (
    BaseProvider,
    ChatMessage,
    GenerationSettings,
    ProviderErrorMapper,
    ProviderRegistry,
    ProviderType,
    RetryDriver,
    RetryPolicy,
)

TEST_API_KEY = "test-key-0123456789"
OTHER_API_KEY = "other-key-9876543210"


async def no_sleep(_delay: float) -> None:
    return None


class ScriptedProvider(BaseProvider):
    """Provider stub that yields configured chunks, then optionally raises."""

    def __init__(
        self,
        chunks: list[str],
        *,
        error: Exception | None = None,
        provider_type: ProviderType = ProviderType.OPENAI,
        retry: RetryDriver | None = None,
    ):
        super().__init__(
            GenerationSettings(),
            retry or RetryDriver(RetryPolicy(max_attempts=1), sleep=no_sleep),
            ProviderErrorMapper(),
            api_key="test",
        )
        self.provider_type = provider_type
        self.chunks = chunks
        self.error = error
        self.calls: list[tuple[str | None, list[ChatMessage], str]] = []

    async def _stream(
        self, system: str | None, turns: list[ChatMessage], model: str
    ) -> AsyncIterator[str]:
        self.calls.append((system, list(turns), model))
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


class AttemptScriptedProvider(ScriptedProvider):
    """Provider stub that follows a different script on each attempt.

    Each script is ``(chunks, error)``; the error, if any, is raised after the
    chunks. The last script repeats once the list is exhausted.
    """

    def __init__(
        self,
        scripts: list[tuple[list[str], Exception | None]],
        *,
        provider_type: ProviderType = ProviderType.OPENAI,
        retry: RetryDriver | None = None,
    ):
        super().__init__([], provider_type=provider_type, retry=retry)
        self.scripts = scripts

    async def _stream(
        self, system: str | None, turns: list[ChatMessage], model: str
    ) -> AsyncIterator[str]:
        self.calls.append((system, list(turns), model))
        chunks, error = self.scripts[min(len(self.calls), len(self.scripts)) - 1]
        for chunk in chunks:
            yield chunk
        if error is not None:
            raise error


def retrying_driver(max_attempts: int = 3) -> RetryDriver:
    return RetryDriver(RetryPolicy(max_attempts=max_attempts), sleep=no_sleep)


@pytest.fixture(autouse=True)
def reset_metrics() -> None:
    metrics.reset()


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Settings:
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("API_KEYS", f"{TEST_API_KEY},{OTHER_API_KEY}")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai-test")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("GOOGLE_API_KEY", "")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def engine(settings: Settings):
    engine = create_engine(
        settings.database_url,
        poolclass=NullPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()
    dispose_engine()
    reset_session_factory()


@pytest.fixture
def db_session(engine) -> Session:
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    session = SessionLocal()
    yield session
    session.close()
    # Release SQLite file handles
    gc.collect()


@pytest.fixture
def scripted_provider() -> Callable[..., ScriptedProvider]:
    return ScriptedProvider


@pytest.fixture
def registry(settings: Settings) -> ProviderRegistry:
    return ProviderRegistry(
        settings, retry=RetryDriver(RetryPolicy(max_attempts=1), sleep=no_sleep)
    )


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {TEST_API_KEY}"}


@pytest.fixture
def client(settings: Settings, db_session: Session, registry: ProviderRegistry):
    from llm_gateway.main import create_app

    app = create_app()
    app.state.provider_registry = registry

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
