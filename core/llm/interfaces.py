"""
LLM Provider Interface - Abstract base for AI service providers.

This module defines the interface for chat-completion services used by the
structured match scorer (OpenAI, DeepSeek, OpenRouter, local gateways, ...).
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional


class LLMProvider(ABC):
    """
    Abstract Interface for AI Service Providers.
    """

    @property
    def is_configured(self) -> bool:
        """False when the provider cannot possibly answer (e.g. no API key)."""
        return True

    @abstractmethod
    def complete_json(
        self,
        user_message: str,
        system_prompt: str,
        schema_spec: Optional[Dict] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """
        Run one chat completion that is expected to answer with a JSON document.

        Args:
            user_message: Prompt body
            system_prompt: System instructions
            schema_spec: Either a wrapped spec {'name', 'strict', 'schema'} or raw JSON schema
            timeout_seconds: Per-call timeout

        Returns:
            The raw message content; parsing and validation are the caller's job.
        """
        pass
