"""Error taxonomy for match scoring."""
from enum import Enum
from typing import Optional


class ScoringErrorCode(str, Enum):
    LLM_UNAVAILABLE = "LLM_UNAVAILABLE"            # network / connection / not configured
    LLM_TIMEOUT = "LLM_TIMEOUT"                    # exceeded the configured budget
    LLM_MALFORMED_OUTPUT = "LLM_MALFORMED_OUTPUT"  # response failed schema validation
    CACHE_UNAVAILABLE = "CACHE_UNAVAILABLE"        # store unreachable / serialization failure


class ScoringError(Exception):
    """Raised by the structured scorer; always recovered by the orchestrator."""

    def __init__(
        self,
        code: ScoringErrorCode,
        message: str,
        original_error: Optional[BaseException] = None
    ):
        super().__init__(f"[{code.value}] {message}")
        self.code = code
        self.original_error = original_error
