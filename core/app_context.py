import logging
from dataclasses import dataclass
from typing import Optional

from core.cache.invalidation import InvalidationCoordinator, InvalidationListener
from core.cache.match_cache import ResultCache
from core.config_loader import AppConfig, CacheConfig, LlmConfig
from core.llm.openai_service import OpenAIService
from core.llm.providers import resolve_llm_config, validate_llm_config
from core.matching.orchestrator import MatchOrchestrator
from core.scorer.fallback import FallbackScorer
from core.scorer.structured import StructuredScorer
from entities.repository import EntityRepository

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    Single source of truth for service instantiation. The entity
    repository is supplied by the caller; everything else is built
    from config.
    """
    config: AppConfig
    repository: EntityRepository
    llm_service: OpenAIService
    orchestrator: MatchOrchestrator
    cache: Optional[ResultCache] = None
    invalidation: Optional[InvalidationCoordinator] = None

    @classmethod
    def build(cls, config: AppConfig, repository: EntityRepository) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration
            repository: Entity store boundary

        Returns:
            Fully wired AppContext instance
        """
        for problem in validate_llm_config(config.llm):
            logger.warning(f"LLM configuration: {problem}")

        llm_service = cls._build_llm_service(config.llm)

        # Result cache (optional - scoring works without it)
        cache = None
        invalidation = None
        if config.cache.enabled:
            cache = cls._build_cache(config.cache)
            invalidation = InvalidationCoordinator(cache, config.cache.invalidation_mode)

        orchestrator = MatchOrchestrator(
            repository=repository,
            structured_scorer=StructuredScorer(llm_service, timeout_ms=config.llm.timeout_ms),
            fallback_scorer=FallbackScorer(config.matching.fallback_weights),
            cache=cache,
            config=config.matching,
            llm_config=config.llm,
            invalidation_mode=config.cache.invalidation_mode,
        )

        return cls(
            config=config,
            repository=repository,
            llm_service=llm_service,
            orchestrator=orchestrator,
            cache=cache,
            invalidation=invalidation,
        )

    @staticmethod
    def _build_llm_service(llm_config: LlmConfig) -> OpenAIService:
        """Build OpenAI-compatible service from resolved provider settings."""
        resolved = resolve_llm_config(llm_config)

        # unresolvable endpoint: leave the client unconfigured
        api_key = resolved.api_key if resolved.is_usable else None

        return OpenAIService(
            api_key=api_key,
            base_url=resolved.base_url,
            model=resolved.model or "",
            temperature=llm_config.temperature,
            timeout_seconds=llm_config.timeout_ms / 1000.0,
            max_retries=llm_config.max_retries,
            response_format=llm_config.response_format,
        )

    @staticmethod
    def _build_cache(cache_config: CacheConfig) -> ResultCache:
        return ResultCache(
            redis_url=cache_config.redis_url,
            password=cache_config.password,
            ttl_seconds=cache_config.ttl_seconds,
            socket_timeout=cache_config.socket_timeout_seconds,
        )

    def build_listener(self) -> Optional[InvalidationListener]:
        """Pub/sub listener for entity events, or None without a cache."""
        if self.invalidation is None or self.cache is None or self.cache.client is None:
            return None
        return InvalidationListener(
            self.invalidation,
            self.cache.client,
            self.config.cache.events_channel,
        )

    def close(self) -> None:
        self.orchestrator.close()
