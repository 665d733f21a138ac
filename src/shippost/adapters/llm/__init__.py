"""LLM adapters."""

from shippost.adapters.llm.claude_client import ClaudeClient

__all__ = ["ClaudeClient"]
