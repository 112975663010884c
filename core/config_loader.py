import yaml
import os
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, model_validator


class LlmConfig(BaseModel):
    """OpenAI-compatible chat completion settings for the structured scorer."""
    provider: str = "deepseek"  # preset name, or any name when base_url is set
    base_url: Optional[str] = None  # overrides the preset's base URL
    api_key: Optional[str] = None
    model: Optional[str] = None  # overrides the preset's model name
    timeout_ms: int = Field(default=3000, gt=0)  # per-call timeout
    max_retries: int = Field(default=2, ge=0, le=2)  # transient-error retries
    temperature: float = 0.3
    # "json_object" works with every OpenAI-compatible vendor;
    # "json_schema" sends the strict schema where the vendor supports it.
    response_format: str = "json_object"


class InvalidationMode(str, Enum):
    BLANKET = "blanket"    # wipe every list on the opposite axis
    TARGETED = "targeted"  # use reverse indexes to wipe only affected lists


class CacheConfig(BaseModel):
    """Redis result cache settings."""
    enabled: bool = True
    redis_url: str = "redis://localhost:6379/0"
    password: Optional[str] = None
    ttl_seconds: int = Field(default=3600, gt=0)  # shared by pair scores and lists
    socket_timeout_seconds: float = 2.0
    invalidation_mode: InvalidationMode = InvalidationMode.BLANKET
    events_channel: str = "match:events"  # pub/sub channel for entity change events


class FallbackWeights(BaseModel):
    """Weights for the deterministic fallback overall score (must sum to 1.0)."""
    skill: float = Field(default=0.5, ge=0.0, le=1.0)
    interest: float = Field(default=0.3, ge=0.0, le=1.0)
    experience: float = Field(default=0.2, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_weights_sum_to_one(self) -> "FallbackWeights":
        total = self.skill + self.interest + self.experience
        if abs(total - 1.0) > 1e-6:
            raise ValueError(
                f"Fallback weights must sum to 1.0, got {total:.6f} "
                f"(skill={self.skill}, interest={self.interest}, experience={self.experience})"
            )
        return self


class MatchingConfig(BaseModel):
    """
    Configuration for the MatchOrchestrator.
    """
    fallback_weights: FallbackWeights = Field(default_factory=FallbackWeights)

    # Default ranked-list sizes
    student_recommendation_limit: int = Field(default=10, gt=0)
    project_candidate_limit: int = Field(default=20, gt=0)

    # Concurrency
    max_workers: int = Field(default=8, gt=0)  # candidate scoring pool
    model_workers: int = Field(default=4, gt=0)  # in-flight model calls
    single_flight: bool = True  # collapse concurrent identical pair requests

    # Hard wall-clock budget for one model-backed score (all attempts).
    # None = timeout_ms * (max_retries + 1)
    score_budget_ms: Optional[int] = None


class EntitiesConfig(BaseModel):
    """Fixture-backed entity store used by the CLI."""
    path: str = "entities.yaml"


class AppConfig(BaseModel):
    llm: LlmConfig = Field(default_factory=LlmConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    entities: EntitiesConfig = Field(default_factory=EntitiesConfig)


def _ensure_section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    if name not in data or data[name] is None:
        data[name] = {}
    return data[name]


def load_config(config_path: str = "config.yaml") -> AppConfig:
    # If not found at relative path (e.g. running from another directory), try the project root
    if not os.path.exists(config_path):
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "..", "config.yaml")

    data: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

    # Allow env var overrides for the model provider
    env_llm = {
        "provider": os.environ.get("LLM_PROVIDER"),
        "api_key": os.environ.get("LLM_API_KEY"),
        "base_url": os.environ.get("LLM_BASE_URL"),
        "model": os.environ.get("LLM_MODEL"),
        "timeout_ms": os.environ.get("LLM_TIMEOUT"),
    }
    for key, value in env_llm.items():
        if value:
            _ensure_section(data, "llm")[key] = value

    # Allow env var override for Redis URL
    env_redis_url = os.environ.get("REDIS_URL")
    if env_redis_url:
        _ensure_section(data, "cache")["redis_url"] = env_redis_url

    env_ttl = os.environ.get("MATCH_CACHE_TTL")
    if env_ttl:
        _ensure_section(data, "cache")["ttl_seconds"] = env_ttl

    return AppConfig(**data)
