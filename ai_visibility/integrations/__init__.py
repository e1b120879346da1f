"""Clients for external AI providers."""

from ai_visibility.integrations.llm_client import Completion, LLMClient

__all__ = ["Completion", "LLMClient"]
