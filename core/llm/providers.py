"""
LLM Provider Presets - Resolve a named provider into concrete endpoint settings.

A known provider name supplies a default base URL and model. Any other
name is treated as a custom OpenAI-compatible endpoint and needs an
explicit base_url.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional
import logging

from core.config_loader import LlmConfig

logger = logging.getLogger(__name__)


LLM_PROVIDER_PRESETS: Dict[str, Dict[str, str]] = {
    "deepseek": {
        "base_url": "https://api.deepseek.com/v1",
        "model": "deepseek-chat",
    },
    "openrouter": {
        "base_url": "https://openrouter.ai/api/v1",
        "model": "deepseek/deepseek-chat",
    },
    "openai": {
        "base_url": "https://api.openai.com/v1",
        "model": "gpt-3.5-turbo",
    },
}


@dataclass(frozen=True)
class ResolvedLlmConfig:
    """Concrete endpoint settings after preset resolution."""
    provider: str
    base_url: Optional[str]
    model: Optional[str]
    api_key: Optional[str]

    @property
    def is_usable(self) -> bool:
        return bool(self.base_url and self.model and self.api_key)


def resolve_llm_config(llm_config: LlmConfig) -> ResolvedLlmConfig:
    """Merge a provider preset with explicit overrides.

    Explicit base_url/model always win over the preset. For an unknown
    provider without overrides the corresponding fields stay None.
    """
    provider = (llm_config.provider or "").strip().lower()
    preset = LLM_PROVIDER_PRESETS.get(provider, {})

    return ResolvedLlmConfig(
        provider=provider,
        base_url=llm_config.base_url or preset.get("base_url"),
        model=llm_config.model or preset.get("model"),
        api_key=llm_config.api_key or None,
    )


def validate_llm_config(llm_config: LlmConfig) -> List[str]:
    """Return configuration problems as human-readable warnings.

    An empty list means the model-backed scorer is fully configured.
    Problems are never fatal: the matcher falls back to local scoring.
    """
    errors: List[str] = []
    provider = (llm_config.provider or "").strip().lower()

    if not llm_config.api_key:
        errors.append("LLM_API_KEY is not set")

    if not provider:
        errors.append("LLM_PROVIDER is not set")
    elif provider not in LLM_PROVIDER_PRESETS and not llm_config.base_url:
        errors.append(
            f"Unknown LLM provider: {provider}. Please set LLM_BASE_URL for custom providers."
        )

    if provider not in LLM_PROVIDER_PRESETS and not llm_config.model:
        errors.append(f"No model configured for custom provider: {provider or '<unset>'}")

    return errors
