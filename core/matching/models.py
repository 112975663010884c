"""Ranked-list result types."""
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from core.scorer.models import MatchScore
from entities.models import Project, Student


@dataclass(frozen=True)
class RankedMatch:
    """One entry of a ranked list: the counterpart entity and its pair score."""
    candidate_id: str
    candidate: Union[Project, Student]
    score: MatchScore

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.candidate_id,
            "candidate": self.candidate.model_dump(mode="json"),
            "score": self.score.to_public_dict(),
        }


def rank_key(item: RankedMatch):
    """Descending overall, ties by ascending candidate id."""
    return (-item.score.overall, item.candidate_id)


def sort_ranked(items: List[RankedMatch]) -> List[RankedMatch]:
    return sorted(items, key=rank_key)
