"""Model catalogue endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from llm_gateway.auth import RequireAuth
from llm_gateway.core import ErrorCode, NotFoundError
from llm_gateway.db import get_db
from llm_gateway.db.repositories import find_enabled_model, list_enabled_models

router = APIRouter(tags=["models"])


@router.get("/models")
def list_models_route(
    _user_identifier: RequireAuth,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    models = list_enabled_models(db)
    return {
        "models": [
            {"name": model.name, "provider": model.provider, "config": model.config}
            for model in models
        ],
        "count": len(models),
    }


@router.get("/models/{name}")
def get_model_route(
    name: str,
    _user_identifier: RequireAuth,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    model = find_enabled_model(db, name)
    if not model:
        raise NotFoundError(f"Model '{name}' is not available", code=ErrorCode.MODEL_NOT_FOUND)
    return {
        "name": model.name,
        "provider": model.provider,
        "enabled": model.enabled,
        "config": model.config,
    }
