#!/usr/bin/env python3
"""
Match Orchestrator - cache-aware scoring entry point.

Single pair:
    cache hit -> return
    miss      -> StructuredScorer under a hard wall-clock budget
                 -> FallbackScorer on any ScoringError
                 -> write-through to the pair cache (either source)

Ranked list:
    aggregate-key hit -> rehydrate candidates, slice to limit
    miss              -> score every candidate through the single-pair path,
                         sort (overall desc, id asc), truncate, cache

The orchestrator is the only writer of the result cache.
"""

import concurrent.futures
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from core.cache.keys import (
    project_index_key,
    project_list_key,
    score_key,
    student_index_key,
    student_list_key,
)
from core.cache.match_cache import ResultCache
from core.config_loader import InvalidationMode, LlmConfig, MatchingConfig
from core.matching.metrics import MatchingMetrics
from core.matching.models import RankedMatch, sort_ranked
from core.matching.single_flight import SingleFlight
from core.scorer.errors import ScoringError, ScoringErrorCode
from core.scorer.fallback import FallbackScorer
from core.scorer.models import MatchScore
from core.scorer.structured import StructuredScorer
from entities.models import Project, Student
from entities.repository import EntityRepository

logger = logging.getLogger(__name__)

Entity = Union[Student, Project]


class MatchOrchestrator:
    """
    Coordinates cache, model-backed scorer and fallback scorer.

    Owns two thread pools: one for scoring ranked-list candidates
    concurrently and one for model calls, so an abandoned (timed-out) model
    call never occupies a candidate worker. Call close() or use as a context
    manager to release them.
    """

    def __init__(
        self,
        repository: EntityRepository,
        structured_scorer: StructuredScorer,
        fallback_scorer: Optional[FallbackScorer] = None,
        cache: Optional[ResultCache] = None,
        config: Optional[MatchingConfig] = None,
        llm_config: Optional[LlmConfig] = None,
        invalidation_mode: InvalidationMode = InvalidationMode.BLANKET,
        metrics: Optional[MatchingMetrics] = None
    ):
        self.repository = repository
        self.structured_scorer = structured_scorer
        self.config = config or MatchingConfig()
        self.fallback_scorer = fallback_scorer or FallbackScorer(self.config.fallback_weights)
        self.cache = cache
        self.invalidation_mode = InvalidationMode(invalidation_mode)
        self.metrics = metrics or MatchingMetrics()

        llm_config = llm_config or LlmConfig()
        budget_ms = self.config.score_budget_ms or llm_config.timeout_ms * (llm_config.max_retries + 1)
        self.score_budget_seconds = budget_ms / 1000.0

        self._single_flight = SingleFlight() if self.config.single_flight else None
        self._candidate_pool = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="match-candidate"
        )
        self._model_pool = ThreadPoolExecutor(
            max_workers=self.config.model_workers, thread_name_prefix="match-model"
        )

    def __enter__(self) -> "MatchOrchestrator":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Release executors. In-flight model calls are abandoned."""
        self._candidate_pool.shutdown(wait=True)
        self._model_pool.shutdown(wait=False, cancel_futures=True)

    # ------------------------------------------------------------------
    # Single pair
    # ------------------------------------------------------------------

    def get_score(self, student_id: str, project_id: str) -> MatchScore:
        """Score one pair.

        Raises:
            EntityNotFoundError: if either id is unknown.
        """
        student = self.repository.get_student(student_id)
        project = self.repository.get_project(project_id)
        return self._score_pair(student, project)

    def _score_pair(self, student: Student, project: Project) -> MatchScore:
        key = score_key(student.id, project.id)

        cached = self._read_score(key)
        if cached is not None:
            self.metrics.record_cache_hit()
            return cached
        self.metrics.record_cache_miss()

        if self._single_flight is None:
            return self._compute_and_store(key, student, project)

        score, shared = self._single_flight.do(
            key, lambda: self._compute_and_store(key, student, project)
        )
        if shared:
            self.metrics.record_single_flight_join()
            logger.debug(f"Joined in-flight computation for {key}")
        return score

    def _read_score(self, key: str) -> Optional[MatchScore]:
        if self.cache is None:
            return None
        data = self.cache.get(key)
        if data is None:
            return None
        try:
            return MatchScore.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable cached score {key}: {e}")
            self.cache.delete_key(key)
            return None

    def _compute_and_store(self, key: str, student: Student, project: Project) -> MatchScore:
        score = self._compute(student, project)
        if self.cache is not None:
            self.cache.set(key, score.to_dict())
        return score

    def _compute(self, student: Student, project: Project) -> MatchScore:
        try:
            score = self._score_with_model(student, project)
        except ScoringError as e:
            self.metrics.record_llm_error(e.code)
            logger.warning(f"Falling back for {student.id}:{project.id}: {e}")
            score = self.fallback_scorer.score(student, project)
        except Exception as e:
            self.metrics.record_llm_error(ScoringErrorCode.LLM_UNAVAILABLE)
            logger.exception(f"Unexpected scoring failure for {student.id}:{project.id}: {e}")
            score = self.fallback_scorer.score(student, project)

        self.metrics.record_score(score.source)
        return score

    def _score_with_model(self, student: Student, project: Project) -> MatchScore:
        future = self._model_pool.submit(self.structured_scorer.score, student, project)
        try:
            return future.result(timeout=self.score_budget_seconds)
        except concurrent.futures.TimeoutError as e:
            # the late result, if any, is dropped with the future
            future.cancel()
            raise ScoringError(
                ScoringErrorCode.LLM_TIMEOUT,
                f"Scoring budget of {self.score_budget_seconds:.1f}s exceeded",
                e,
            ) from e

    # ------------------------------------------------------------------
    # Ranked lists
    # ------------------------------------------------------------------

    def get_student_recommendations(self, student_id: str, limit: Optional[int] = None) -> List[RankedMatch]:
        """Top active projects for a student.

        Raises:
            EntityNotFoundError: if the student is unknown.
            ValueError: if limit < 1.
        """
        limit = self._resolve_limit(limit, self.config.student_recommendation_limit)
        student = self.repository.get_student(student_id)
        key = student_list_key(student_id)

        def rehydrate(ids: Sequence[str]) -> Dict[str, Entity]:
            projects = self.repository.get_projects(ids)
            return {pid: p for pid, p in projects.items() if p.is_active}

        return self._ranked_list(
            key=key,
            limit=limit,
            rehydrate=rehydrate,
            enumerate_candidates=self.repository.list_active_projects,
            score_candidate=lambda project: self._score_pair(student, project),
            index_key_for=project_index_key,
        )

    def get_project_candidates(self, project_id: str, limit: Optional[int] = None) -> List[RankedMatch]:
        """Top students for a project.

        Raises:
            EntityNotFoundError: if the project is unknown.
            ValueError: if limit < 1.
        """
        limit = self._resolve_limit(limit, self.config.project_candidate_limit)
        project = self.repository.get_project(project_id)
        key = project_list_key(project_id)

        return self._ranked_list(
            key=key,
            limit=limit,
            rehydrate=self.repository.get_students,
            enumerate_candidates=self.repository.list_students,
            score_candidate=lambda student: self._score_pair(student, project),
            index_key_for=student_index_key,
        )

    @staticmethod
    def _resolve_limit(limit: Optional[int], default: int) -> int:
        if limit is None:
            return default
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        return limit

    def _ranked_list(
        self,
        key: str,
        limit: int,
        rehydrate: Callable[[Sequence[str]], Dict[str, Entity]],
        enumerate_candidates: Callable[[], List[Entity]],
        score_candidate: Callable[[Entity], MatchScore],
        index_key_for: Callable[[str], str]
    ) -> List[RankedMatch]:
        cached = self._read_list(key, limit)
        if cached is not None:
            self.metrics.record_list_cache_hit()
            entities = rehydrate([candidate_id for candidate_id, _ in cached])
            return [
                RankedMatch(candidate_id, entities[candidate_id], score)
                for candidate_id, score in cached
                if candidate_id in entities
            ]
        self.metrics.record_list_cache_miss()

        candidates = enumerate_candidates()
        scores = list(self._candidate_pool.map(score_candidate, candidates))
        ranked = sort_ranked([
            RankedMatch(candidate.id, candidate, score)
            for candidate, score in zip(candidates, scores)
        ])
        top = ranked[:limit]

        self._write_list(key, top, limit, complete=len(ranked) <= limit, index_key_for=index_key_for)
        return top

    def _read_list(self, key: str, limit: int) -> Optional[List[Tuple[str, MatchScore]]]:
        """Cached (id, score) pairs sliced to limit, or None when unusable."""
        if self.cache is None:
            return None
        data = self.cache.get(key)
        if data is None:
            return None

        try:
            cached_limit = int(data["limit"])
            complete = bool(data.get("complete", False))
            items = [(str(item["id"]), MatchScore.from_dict(item["score"])) for item in data["items"]]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable cached list {key}: {e}")
            self.cache.delete_key(key)
            return None

        if cached_limit < limit and not complete:
            logger.debug(f"Cached list {key} holds {cached_limit} entries, {limit} requested; recomputing")
            return None
        return items[:limit]

    def _write_list(
        self,
        key: str,
        items: List[RankedMatch],
        limit: int,
        complete: bool,
        index_key_for: Callable[[str], str]
    ) -> None:
        if self.cache is None:
            return

        payload: Dict[str, Any] = {
            "limit": limit,
            "complete": complete,
            "items": [{"id": item.candidate_id, "score": item.score.to_dict()} for item in items],
        }
        if not self.cache.set(key, payload):
            return

        if self.invalidation_mode == InvalidationMode.TARGETED:
            for item in items:
                self.cache.add_to_index(index_key_for(item.candidate_id), [key])
