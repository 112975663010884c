"""Matching Module - cache-aware orchestration of pair scoring and ranked lists."""
from core.matching.metrics import MatchingMetrics
from core.matching.models import RankedMatch
from core.matching.orchestrator import MatchOrchestrator
from core.matching.single_flight import SingleFlight

__all__ = [
    'MatchingMetrics',
    'MatchOrchestrator',
    'RankedMatch',
    'SingleFlight',
]
