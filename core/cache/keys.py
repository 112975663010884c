"""Cache key namespace for match results.

Stable string contract shared with every consumer of the store:
    score:{studentId}:{projectId}
    list:student:{studentId}
    list:project:{projectId}

Reverse indexes (targeted invalidation only):
    idx:student:{studentId} -> set of list:project:* keys containing the student
    idx:project:{projectId} -> set of list:student:* keys containing the project
"""
import re

SCORE_PREFIX = "score"
STUDENT_LIST_PREFIX = "list:student"
PROJECT_LIST_PREFIX = "list:project"
STUDENT_INDEX_PREFIX = "idx:student"
PROJECT_INDEX_PREFIX = "idx:project"

ALL_SCORES_PATTERN = f"{SCORE_PREFIX}:*"
ALL_STUDENT_LISTS_PATTERN = f"{STUDENT_LIST_PREFIX}:*"
ALL_PROJECT_LISTS_PATTERN = f"{PROJECT_LIST_PREFIX}:*"
ALL_INDEXES_PATTERN = "idx:*"

_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def escape_glob(value: str) -> str:
    """Escape Redis MATCH metacharacters so an id only matches itself."""
    return _GLOB_SPECIAL.sub(r"\\\1", str(value))


def score_key(student_id: str, project_id: str) -> str:
    return f"{SCORE_PREFIX}:{student_id}:{project_id}"


def student_list_key(student_id: str) -> str:
    return f"{STUDENT_LIST_PREFIX}:{student_id}"


def project_list_key(project_id: str) -> str:
    return f"{PROJECT_LIST_PREFIX}:{project_id}"


def student_scores_pattern(student_id: str) -> str:
    """All pair scores for one student: score:{S}:*"""
    return f"{SCORE_PREFIX}:{escape_glob(student_id)}:*"


def project_scores_pattern(project_id: str) -> str:
    """All pair scores for one project: score:*:{P}"""
    return f"{SCORE_PREFIX}:*:{escape_glob(project_id)}"


def student_index_key(student_id: str) -> str:
    return f"{STUDENT_INDEX_PREFIX}:{student_id}"


def project_index_key(project_id: str) -> str:
    return f"{PROJECT_INDEX_PREFIX}:{project_id}"
