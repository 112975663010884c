"""
JSON schema for the structured match-scoring response.

Wrapped spec format ({'name', 'strict', 'schema'}) as accepted by
OpenAIService when json_schema response mode is enabled.
"""

_SCORE_FIELD = {"type": "number", "minimum": 0, "maximum": 100}

MATCH_SCORE_SCHEMA = {
    "name": "match_score_schema",
    "strict": True,
    "schema": {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "score": {**_SCORE_FIELD, "description": "Overall compatibility (0-100)"},
            "skillMatch": {**_SCORE_FIELD, "description": "Skill coverage (0-100)"},
            "interestMatch": {**_SCORE_FIELD, "description": "Interest/field alignment (0-100)"},
            "experienceMatch": {**_SCORE_FIELD, "description": "Experience relevance (0-100)"},
            "reasoning": {"type": "string", "description": "Justification of the scores"},
            "matchedSkills": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Required project skills the student has",
            },
            "suggestions": {"type": "string", "description": "Advice for the student"},
        },
        "required": [
            "score",
            "skillMatch",
            "interestMatch",
            "experienceMatch",
            "reasoning",
            "matchedSkills",
            "suggestions",
        ],
    },
}
