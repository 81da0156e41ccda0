"""LLM gateway: streaming chat relay for OpenAI, Anthropic, and Gemini."""

__version__ = "0.1.0"
