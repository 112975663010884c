"""LLM Module - LLM services and interfaces."""
from core.llm.interfaces import LLMProvider
from core.llm.openai_service import OpenAIService
from core.llm.providers import LLM_PROVIDER_PRESETS, resolve_llm_config, validate_llm_config

__all__ = [
    'LLMProvider',
    'OpenAIService',
    'LLM_PROVIDER_PRESETS',
    'resolve_llm_config',
    'validate_llm_config',
]
