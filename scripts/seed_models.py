#!/usr/bin/env python3
"""Seed the default LLM model catalogue.

Usage:
  python scripts/seed_models.py

Existing entries are left untouched, so the script can be re-run safely.
Run ``alembic upgrade head`` first.
"""
from __future__ import annotations

import argparse
import sys

from sqlalchemy.exc import SQLAlchemyError

from llm_gateway.db import session_scope
from llm_gateway.db.repositories import seed_default_models


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed LLM models")
    parser.add_argument("--quiet", action="store_true")
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    try:
        with session_scope() as session:
            models = seed_default_models(session)
            names = [(model.provider, model.name) for model in models]
    except SQLAlchemyError as exc:
        print(f"Seeding failed: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if not args.quiet:
        for provider, name in names:
            print(f"  {provider:<10} {name}")
        print(f"Seeded {len(names)} LLM models")


if __name__ == "__main__":
    main()
