"""
Structured-output validation for model match scores.

Policy:
- numeric fields outside [0, 100] are clamped, never rejected
- anything else that does not fit the schema (unparseable JSON, a missing
  field, a wrong type, a non-finite number, a non-string matched skill)
  is LLM_MALFORMED_OUTPUT
"""
from typing import Annotated, List, Optional, Union
import json
import logging
import math

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
)

from core.scorer.errors import ScoringError, ScoringErrorCode
from core.scorer.models import clamp_score

logger = logging.getLogger(__name__)


def _finite_clamped(value: Union[int, float]) -> float:
    if isinstance(value, int):
        # ints beyond float range would overflow the conversion
        return clamp_score(max(-1, min(101, value)))
    if not math.isfinite(value):
        raise ValueError(f"score must be a finite number (got {value!r})")
    return clamp_score(value)


ScoreValue = Annotated[Union[StrictInt, StrictFloat], AfterValidator(_finite_clamped)]


class MatchingOutput(BaseModel):
    """The JSON document the model must return."""
    model_config = ConfigDict(extra="ignore")

    score: ScoreValue
    skillMatch: ScoreValue
    interestMatch: ScoreValue
    experienceMatch: ScoreValue
    reasoning: StrictStr
    matchedSkills: List[StrictStr]
    suggestions: StrictStr


def _extract_balanced(text: str, open_char: str, close_char: str) -> Optional[str]:
    start = text.find(open_char)
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth == 0:
                return text[start: idx + 1].strip()
    return None


def extract_json_from_response(content: str) -> str:
    """Strip markdown fences or surrounding prose from a JSON answer."""
    content = content.strip()

    if content.startswith("```"):
        first_newline = content.find("\n")
        if first_newline != -1:
            content = content[first_newline + 1:]
        if content.endswith("```"):
            content = content[:-3]
        content = content.strip()

    if content.startswith("{"):
        return content

    extracted = _extract_balanced(content, "{", "}")
    return extracted if extracted is not None else content


def parse_matching_output(raw: str) -> MatchingOutput:
    """Parse and validate a raw model answer.

    Raises:
        ScoringError: with code LLM_MALFORMED_OUTPUT on any violation
            other than an out-of-range number.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ScoringError(ScoringErrorCode.LLM_MALFORMED_OUTPUT, "Model returned empty content")

    content = extract_json_from_response(raw)
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ScoringError(
            ScoringErrorCode.LLM_MALFORMED_OUTPUT, f"Model output is not valid JSON: {e}", e
        ) from e

    if not isinstance(data, dict):
        raise ScoringError(
            ScoringErrorCode.LLM_MALFORMED_OUTPUT,
            f"Model output must be a JSON object, got {type(data).__name__}",
        )

    try:
        return MatchingOutput.model_validate(data)
    except ValidationError as e:
        raise ScoringError(
            ScoringErrorCode.LLM_MALFORMED_OUTPUT,
            f"Model output failed schema validation: {e.error_count()} error(s)",
            e,
        ) from e
