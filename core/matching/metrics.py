"""In-process counters for the matching path.

Thread-safe; one instance per orchestrator. fallback_usage_rate() is the
health signal for the model-backed path.
"""
from collections import defaultdict
from typing import Any, Dict
import threading

from core.scorer.errors import ScoringErrorCode
from core.scorer.models import ScoreSource


class MatchingMetrics:
    """Counters for produced scores, cache traffic and model failures."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._llm_errors: Dict[str, int] = defaultdict(int)

    def _inc(self, name: str, value: int = 1) -> None:
        with self._lock:
            self._counters[name] += value

    def record_score(self, source: ScoreSource) -> None:
        """Count one freshly computed score (cache hits are not scores)."""
        if source == ScoreSource.MODEL:
            self._inc("scores_model")
        else:
            self._inc("scores_fallback")

    def record_llm_error(self, code: ScoringErrorCode) -> None:
        with self._lock:
            self._llm_errors[code.value] += 1

    def record_cache_hit(self) -> None:
        self._inc("cache_hits")

    def record_cache_miss(self) -> None:
        self._inc("cache_misses")

    def record_list_cache_hit(self) -> None:
        self._inc("list_cache_hits")

    def record_list_cache_miss(self) -> None:
        self._inc("list_cache_misses")

    def record_single_flight_join(self) -> None:
        self._inc("single_flight_joins")

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    @property
    def scores_model(self) -> int:
        return self.get("scores_model")

    @property
    def scores_fallback(self) -> int:
        return self.get("scores_fallback")

    @property
    def cache_hits(self) -> int:
        return self.get("cache_hits")

    @property
    def cache_misses(self) -> int:
        return self.get("cache_misses")

    @property
    def list_cache_hits(self) -> int:
        return self.get("list_cache_hits")

    @property
    def list_cache_misses(self) -> int:
        return self.get("list_cache_misses")

    @property
    def single_flight_joins(self) -> int:
        return self.get("single_flight_joins")

    def llm_errors(self, code: ScoringErrorCode) -> int:
        with self._lock:
            return self._llm_errors.get(code.value, 0)

    def fallback_usage_rate(self) -> float:
        """Fraction of computed scores with source=FALLBACK (0.0 when none)."""
        with self._lock:
            model = self._counters.get("scores_model", 0)
            fallback = self._counters.get("scores_fallback", 0)
        total = model + fallback
        return fallback / total if total else 0.0

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            data: Dict[str, Any] = {
                name: self._counters.get(name, 0)
                for name in (
                    "scores_model",
                    "scores_fallback",
                    "cache_hits",
                    "cache_misses",
                    "list_cache_hits",
                    "list_cache_misses",
                    "single_flight_joins",
                )
            }
            data["llm_errors"] = dict(self._llm_errors)
        total = data["scores_model"] + data["scores_fallback"]
        data["fallback_usage_rate"] = data["scores_fallback"] / total if total else 0.0
        return data

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._llm_errors.clear()
