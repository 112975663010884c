#!/usr/bin/env python3
"""
Fallback Scorer - deterministic keyword-based match scoring.

Used whenever the model-backed path is unavailable or answers with
malformed output. Pure function of its inputs: no I/O, no randomness,
no clock. Identical inputs always produce identical scores.

Formulas (all sub-scores in [0, 100], rounded to 2 decimals):
- skill_match      = 100 * |skills ∩ required| / max(1, |required|)
- interest_match   = 100 exact field match, 70 partial overlap, 30 no
                     overlap, 0 when either side is empty
- experience_match = 50 * clamp((gpa - 2.0) / 2.0, 0, 1)
                     + min(50, 20 * project_experience_count)
- overall          = weighted average with FallbackWeights (sum to 1.0)
"""

from typing import List, Optional, Set
import re

from core.config_loader import FallbackWeights
from core.scorer.models import MatchScore, ScoreSource, clamp_score
from entities.models import Project, Student

INTEREST_EXACT = 100.0
INTEREST_PARTIAL = 70.0
INTEREST_NONE = 30.0

GPA_FLOOR = 2.0
GPA_CEILING = 4.0
GPA_POINTS = 50.0
POINTS_PER_PROJECT = 20.0
PROJECT_POINTS_CAP = 50.0

MIN_TOKEN_LENGTH = 3
MAX_SUGGESTED_SKILLS = 3


def _unique(values: List[str]) -> List[str]:
    seen: Set[str] = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _tokens(text: str) -> Set[str]:
    return {t for t in re.findall(r"[^\W_]+", text) if len(t) >= MIN_TOKEN_LENGTH}


def interest_overlap(interests: List[str], research_field: str) -> float:
    """Coarse field-name overlap between research interests and a project field."""
    field = research_field.strip().lower()
    normalized = [i.strip().lower() for i in interests if i and i.strip()]
    if not field or not normalized:
        return 0.0

    if field in normalized:
        return INTEREST_EXACT

    field_tokens = _tokens(field)
    for interest in normalized:
        if interest in field or field in interest:
            return INTEREST_PARTIAL
        if field_tokens & _tokens(interest):
            return INTEREST_PARTIAL

    return INTEREST_NONE


def experience_estimate(gpa: float, project_experience_count: int) -> float:
    gpa_ratio = (gpa - GPA_FLOOR) / (GPA_CEILING - GPA_FLOOR)
    gpa_points = GPA_POINTS * max(0.0, min(1.0, gpa_ratio))
    project_points = min(PROJECT_POINTS_CAP, POINTS_PER_PROJECT * max(0, project_experience_count))
    return clamp_score(gpa_points + project_points)


class FallbackScorer:
    """Deterministic local scorer; total function, always source=FALLBACK."""

    def __init__(self, weights: Optional[FallbackWeights] = None):
        self.weights = weights or FallbackWeights()

    def score(self, student: Student, project: Project) -> MatchScore:
        required = _unique(project.required_skills)
        owned = set(student.skills)
        matched = [skill for skill in required if skill in owned]
        missing = [skill for skill in required if skill not in owned]

        skill_match = round(100.0 * len(matched) / max(1, len(required)), 2)
        interest_match = round(interest_overlap(student.research_interests, project.research_field), 2)
        experience_match = round(
            experience_estimate(student.gpa, student.project_experience_count), 2
        )

        overall = round(
            clamp_score(
                self.weights.skill * skill_match
                + self.weights.interest * interest_match
                + self.weights.experience * experience_match
            ),
            2,
        )

        return MatchScore(
            overall=overall,
            skill_match=skill_match,
            interest_match=interest_match,
            experience_match=experience_match,
            reasoning=self._reasoning(len(matched), len(required), interest_match, experience_match),
            matched_skills=tuple(matched),
            suggestions=self._suggestions(missing),
            source=ScoreSource.FALLBACK,
        )

    @staticmethod
    def _reasoning(matched: int, required: int, interest: float, experience: float) -> str:
        return (
            "Keyword-based estimate (model scoring unavailable): "
            f"{matched} of {required} required skills matched, "
            f"interest alignment {interest:.0f}/100, experience {experience:.0f}/100."
        )

    @staticmethod
    def _suggestions(missing: List[str]) -> str:
        if not missing:
            return "Keep your profile up to date to improve match accuracy."
        return "Consider strengthening: " + ", ".join(missing[:MAX_SUGGESTED_SKILLS]) + "."
