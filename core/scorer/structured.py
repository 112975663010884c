#!/usr/bin/env python3
"""
Structured Scorer - model-backed match scoring.

Formats a (student, project) pair into a prompt, runs one JSON-mode chat
completion through an LLMProvider and validates the answer. Every failure
surfaces as a ScoringError carrying one of the LLM_* codes; this module
never touches the result cache.
"""

from typing import List, Optional
import logging

import openai

from core.llm.interfaces import LLMProvider
from core.llm.schema_models import MATCH_SCORE_SCHEMA
from core.llm.system_prompts import MATCH_SCORING_SYSTEM_PROMPT
from core.scorer.errors import ScoringError, ScoringErrorCode
from core.scorer.models import MatchScore, ScoreSource
from core.scorer.prompts import build_match_prompt
from core.scorer.validation import MatchingOutput, parse_matching_output
from entities.models import Project, Student

logger = logging.getLogger(__name__)


def intersect_skills(candidates: List[str], student: Student, project: Project) -> List[str]:
    """Keep candidates that are both student skills and required skills.

    Exact, case-sensitive comparison; output follows the project's
    required-skill order without duplicates.
    """
    wanted = set(candidates)
    owned = set(student.skills)
    matched: List[str] = []
    for skill in project.required_skills:
        if skill in wanted and skill in owned and skill not in matched:
            matched.append(skill)
    return matched


class StructuredScorer:
    """Rates a pair with a structured-output capable language model."""

    def __init__(self, llm: LLMProvider, timeout_ms: int = 3000):
        self.llm = llm
        self.timeout_ms = timeout_ms

    def score(
        self,
        student: Student,
        project: Project,
        timeout_ms: Optional[int] = None
    ) -> MatchScore:
        """Score one pair.

        Raises:
            ScoringError: LLM_UNAVAILABLE, LLM_TIMEOUT or LLM_MALFORMED_OUTPUT.
        """
        if not self.llm.is_configured:
            raise ScoringError(ScoringErrorCode.LLM_UNAVAILABLE, "LLM provider is not configured")

        prompt = build_match_prompt(student, project)
        timeout_seconds = (timeout_ms or self.timeout_ms) / 1000.0

        try:
            raw = self.llm.complete_json(
                prompt,
                MATCH_SCORING_SYSTEM_PROMPT,
                schema_spec=MATCH_SCORE_SCHEMA,
                timeout_seconds=timeout_seconds,
            )
        except openai.APITimeoutError as e:
            raise ScoringError(
                ScoringErrorCode.LLM_TIMEOUT, f"Model call exceeded {timeout_seconds:.1f}s", e
            ) from e
        except TimeoutError as e:
            raise ScoringError(
                ScoringErrorCode.LLM_TIMEOUT, f"Model call exceeded {timeout_seconds:.1f}s", e
            ) from e
        except ValueError as e:
            raise ScoringError(ScoringErrorCode.LLM_MALFORMED_OUTPUT, str(e), e) from e
        except Exception as e:
            raise ScoringError(ScoringErrorCode.LLM_UNAVAILABLE, f"Model call failed: {e}", e) from e

        output = parse_matching_output(raw)
        return self._to_match_score(output, student, project)

    def _to_match_score(
        self,
        output: MatchingOutput,
        student: Student,
        project: Project
    ) -> MatchScore:
        matched = intersect_skills(output.matchedSkills, student, project)
        dropped = [s for s in output.matchedSkills if s not in matched]
        if dropped:
            logger.debug(
                f"Dropped {len(dropped)} model-reported skills outside the "
                f"student/project intersection for {student.id}:{project.id}"
            )

        return MatchScore(
            overall=output.score,
            skill_match=output.skillMatch,
            interest_match=output.interestMatch,
            experience_match=output.experienceMatch,
            reasoning=output.reasoning,
            matched_skills=tuple(matched),
            suggestions=output.suggestions,
            source=ScoreSource.MODEL,
        )
