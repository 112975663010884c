#!/usr/bin/env python3
"""
Scoring Module - pair scoring for student/project matching.

Public API:
- StructuredScorer: model-backed scorer (prompt + schema validation)
- FallbackScorer: deterministic local scorer
- MatchScore / ScoreSource: immutable score value object
- ScoringError / ScoringErrorCode: error taxonomy

Modules:
- models.py: MatchScore, ScoreSource
- errors.py: error taxonomy
- prompts.py: prompt builder
- validation.py: structured-output parsing and validation
- structured.py: StructuredScorer
- fallback.py: FallbackScorer
"""

from core.scorer.models import MatchScore, ScoreSource
from core.scorer.errors import ScoringError, ScoringErrorCode
from core.scorer.structured import StructuredScorer
from core.scorer.fallback import FallbackScorer

__all__ = [
    'MatchScore',
    'ScoreSource',
    'ScoringError',
    'ScoringErrorCode',
    'StructuredScorer',
    'FallbackScorer',
]
