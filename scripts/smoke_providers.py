#!/usr/bin/env python3
"""Send one short chat per provider through a running gateway.

Usage:
  python scripts/smoke_providers.py --base-url http://127.0.0.1:8000 --api-key KEY

Environment fallbacks:
  LLM_GATEWAY_BASE_URL, LLM_GATEWAY_API_KEY
"""
from __future__ import annotations

import argparse
import json
import os
import sys

import httpx

DEFAULT_MODELS = ("gpt-3.5-turbo", "claude-3-haiku-20240307", "gemini-1.5-flash")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="LLM gateway provider smoke test")
    parser.add_argument(
        "--base-url", default=os.getenv("LLM_GATEWAY_BASE_URL", "http://127.0.0.1:8000")
    )
    parser.add_argument("--api-key", default=os.getenv("LLM_GATEWAY_API_KEY"))
    parser.add_argument("--message", default="Say hello in exactly 3 words")
    parser.add_argument("--model", action="append", dest="models")
    return parser.parse_args()


def exit_with(message: str, code: int = 1) -> None:
    print(message, file=sys.stderr)
    raise SystemExit(code)


def stream_chat(client: httpx.Client, model: str, message: str) -> bool:
    """Print the streamed reply; return False if the gateway reported an error."""
    ok = True
    with client.stream(
        "POST", "/api/v1/chat", json={"message": message, "model": model}
    ) as response:
        if response.status_code != 200:
            response.read()
            print(f"  HTTP {response.status_code} {response.text}")
            return False
        for line in response.iter_lines():
            if not line.startswith("data: "):
                continue
            event = json.loads(line[len("data: "):])
            if event["type"] == "token" and not event["done"]:
                print(event["text"], end="", flush=True)
            elif event["type"] == "token":
                print(f"\n  ({event['latency_ms']} ms)")
            elif event["type"] == "error":
                print(f"\n  error {event['code']}: {event['message']}")
                ok = False
    return ok


def main() -> None:
    args = parse_args()

    if not args.api_key:
        exit_with("Missing API key (use --api-key or LLM_GATEWAY_API_KEY)")

    client = httpx.Client(
        base_url=args.base_url.rstrip("/"),
        timeout=60.0,
        headers={"Authorization": f"Bearer {args.api_key}"},
    )

    try:
        health = client.get("/api/v1/health").json()
    except Exception as exc:
        exit_with(f"Request failed: {exc}")
    print(f"Configured providers: {health.get('providers')}")

    failures = 0
    for model in args.models or DEFAULT_MODELS:
        print(f"{model}:")
        try:
            if not stream_chat(client, model, args.message):
                failures += 1
        except httpx.HTTPError as exc:
            print(f"  request failed: {exc}")
            failures += 1

    if failures:
        exit_with(f"{failures} provider(s) failed")


if __name__ == "__main__":
    main()
