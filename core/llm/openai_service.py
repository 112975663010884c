"""
OpenAI Service - LLM implementation using any OpenAI-compatible API.

Provides JSON-mode chat completions for the structured match scorer.
"""
from typing import Dict, Any, List, Optional, Tuple
import copy
import logging
import re

import openai
from openai import OpenAI
from tenacity import (
    Retrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from core.llm.interfaces import LLMProvider

logger = logging.getLogger(__name__)

# Longest server-declared wait honoured before a retry.
MAX_RATE_LIMIT_WAIT_SECONDS = 2.0


# ---------------------------------------------------------------------------
# Retry helpers
# ---------------------------------------------------------------------------

RETRYABLE_ERRORS = (
    openai.RateLimitError,
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.InternalServerError,
)


def _is_retryable(exc: BaseException) -> bool:
    """Return True for transient errors that are worth retrying."""
    return isinstance(exc, RETRYABLE_ERRORS)


def _log_retry(retry_state: RetryCallState) -> None:
    """Log a warning before each retry sleep."""
    exc = retry_state.outcome.exception()
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    if isinstance(exc, openai.RateLimitError):
        logger.warning(
            "Rate limit hit (attempt %s). Waiting %.1fs before retry. Details: %s",
            retry_state.attempt_number, wait, exc,
        )
    else:
        logger.warning(
            "Transient API error (attempt %s). Waiting %.1fs before retry. Details: %s",
            retry_state.attempt_number, wait, exc,
        )


def _parse_reset_duration(value: str) -> float:
    """Parse a reset-timer header value like '1s', '500ms', '1m30s' into seconds."""
    total = 0.0
    for amount, unit in re.findall(r"([\d.]+)(ms|s|m|h)", value):
        a = float(amount)
        if unit == "ms":
            total += a / 1000
        elif unit == "s":
            total += a
        elif unit == "m":
            total += a * 60
        else:  # h
            total += a * 3600
    return total


def _wait_from_rate_limit_headers(exc: openai.RateLimitError) -> float:
    """Extract the longest declared wait from rate-limit response headers.

    Reads ``retry-after`` (plain seconds) and the OpenAI
    ``x-ratelimit-reset-requests`` / ``x-ratelimit-reset-tokens`` timers.
    Returns 0.0 if no usable header is present.
    """
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return 0.0

    candidates: List[float] = []
    retry_after = headers.get("retry-after", "")
    if retry_after:
        try:
            candidates.append(float(retry_after))
        except ValueError:
            pass

    for header in ("x-ratelimit-reset-requests", "x-ratelimit-reset-tokens"):
        parsed = _parse_reset_duration(headers.get(header, ""))
        if parsed > 0:
            candidates.append(parsed)

    return max(candidates) if candidates else 0.0


def _wait_respecting_retry_after(retry_state: RetryCallState) -> float:
    """Return how long tenacity should sleep before the next attempt."""
    exc = retry_state.outcome.exception()
    if isinstance(exc, openai.RateLimitError):
        wait = _wait_from_rate_limit_headers(exc)
        if wait > 0:
            return min(wait, MAX_RATE_LIMIT_WAIT_SECONDS)

    # Short exponential backoff: 0.25 -> 0.5 -> 1.0
    exp = wait_exponential(multiplier=0.25, min=0.25, max=1.0)
    return exp(retry_state)


def _llm_retry(max_retries: int) -> Retrying:
    """Return a tenacity Retrying controller for one LLM call."""
    return Retrying(
        retry=retry_if_exception(_is_retryable),
        wait=_wait_respecting_retry_after,
        stop=stop_after_attempt(max_retries + 1),
        before_sleep=_log_retry,
        reraise=True,
    )


def _unwrap_schema_spec(spec: Dict[str, Any]) -> Tuple[str, bool, Dict[str, Any]]:
    """Unwrap a schema spec to extract name, strict flag, and raw JSON schema.

    Args:
        spec: Either a wrapped spec {'name': str, 'strict': bool, 'schema': {...}}
              or a raw JSON schema dict

    Returns:
        Tuple of (name, strict, raw_schema)
    """
    if isinstance(spec, dict) and "schema" in spec and "name" in spec:
        return spec.get("name", "match_response"), bool(spec.get("strict", False)), spec["schema"]
    return "match_response", False, spec


class OpenAIService(LLMProvider):
    """
    OpenAI-compatible LLM Service.

    The client is created with ``max_retries=0``; retries are owned by
    tenacity so the attempt count stays bounded by configuration.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: str = "deepseek-chat",
        temperature: float = 0.3,
        timeout_seconds: float = 3.0,
        max_retries: int = 2,
        response_format: str = "json_object",
    ):
        self.model = model
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.response_format = response_format
        self.base_url = base_url

        self.client: Optional[OpenAI] = None
        if api_key:
            client_kwargs: Dict[str, Any] = {
                'api_key': api_key,
                'timeout': timeout_seconds,
                'max_retries': 0,
            }
            if base_url:
                client_kwargs['base_url'] = base_url
            self.client = OpenAI(**client_kwargs)
        else:
            logger.warning("LLM API key not configured. Matching will use the fallback scorer.")

    @property
    def is_configured(self) -> bool:
        return self.client is not None and bool(self.model)

    def _build_response_format(self, schema_spec: Optional[Dict]) -> Dict[str, Any]:
        if self.response_format != "json_schema" or not schema_spec:
            return {"type": "json_object"}

        name, strict, raw_schema = _unwrap_schema_spec(schema_spec)
        runtime_schema = copy.deepcopy(raw_schema)
        if runtime_schema.get("type") != "object" or "properties" not in runtime_schema:
            raise ValueError(f"Not a valid JSON Schema object. Top-level keys: {list(runtime_schema.keys())}")

        return {
            "type": "json_schema",
            "json_schema": {
                "name": name,
                "schema": runtime_schema,
                "strict": strict,
            },
        }

    def complete_json(
        self,
        user_message: str,
        system_prompt: str,
        schema_spec: Optional[Dict] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """Run a JSON-mode chat completion with bounded transient retries."""
        if self.client is None:
            raise openai.OpenAIError("LLM client is not configured (missing API key)")

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]
        request_kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "response_format": self._build_response_format(schema_spec),
            "timeout": timeout_seconds or self.timeout_seconds,
        }

        response = _llm_retry(self.max_retries)(
            self.client.chat.completions.create, **request_kwargs
        )

        try:
            content = response.choices[0].message.content
        except (IndexError, AttributeError) as e:
            logger.error(f"Failed to read completion content: {e}")
            raise ValueError(f"Completion response has no message content: {e}") from e

        if content is None:
            raise ValueError("Completion response has empty content")

        logger.debug(f"Model {self.model} answered with {len(content)} chars")
        return content
