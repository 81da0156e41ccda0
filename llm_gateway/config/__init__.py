"""Configuration module for the LLM gateway."""

from llm_gateway.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
