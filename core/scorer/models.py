#!/usr/bin/env python3
"""
Scoring Models - Data structures for match scoring results.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple
import math


class ScoreSource(str, Enum):
    """Which scorer produced a MatchScore."""
    MODEL = "MODEL"
    FALLBACK = "FALLBACK"


def clamp_score(value: float) -> float:
    """Clamp a finite number into [0, 100]."""
    return max(0.0, min(100.0, float(value)))


_SCORE_FIELDS = ("overall", "skill_match", "interest_match", "experience_match")


@dataclass(frozen=True)
class MatchScore:
    """Compatibility score for one (student, project) pair.

    Immutable once produced. A recomputation always builds a new instance.
    """
    overall: float
    skill_match: float
    interest_match: float
    experience_match: float
    reasoning: str = ""
    matched_skills: Tuple[str, ...] = ()
    suggestions: str = ""
    source: ScoreSource = ScoreSource.FALLBACK

    def __post_init__(self) -> None:
        for name in _SCORE_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or math.isnan(value) or not (0.0 <= value <= 100.0):
                raise ValueError(f"{name} must be between 0 and 100 (got {value!r})")
        object.__setattr__(self, "matched_skills", tuple(self.matched_skills))
        object.__setattr__(self, "source", ScoreSource(self.source))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the cache, including the producing source."""
        return {
            "overall": self.overall,
            "skill_match": self.skill_match,
            "interest_match": self.interest_match,
            "experience_match": self.experience_match,
            "reasoning": self.reasoning,
            "matched_skills": list(self.matched_skills),
            "suggestions": self.suggestions,
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchScore":
        return cls(
            overall=data["overall"],
            skill_match=data["skill_match"],
            interest_match=data["interest_match"],
            experience_match=data["experience_match"],
            reasoning=data.get("reasoning", ""),
            matched_skills=tuple(data.get("matched_skills") or ()),
            suggestions=data.get("suggestions", ""),
            source=ScoreSource(data.get("source", ScoreSource.FALLBACK.value)),
        )

    def to_public_dict(self) -> Dict[str, Any]:
        """Caller-facing shape; the source tag is internal."""
        return {
            "overall": self.overall,
            "skillMatch": self.skill_match,
            "interestMatch": self.interest_match,
            "experienceMatch": self.experience_match,
            "reasoning": self.reasoning,
            "matchedSkills": list(self.matched_skills),
            "suggestions": self.suggestions,
        }
