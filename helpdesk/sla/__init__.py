"""SLA deadline computation and breach detection."""

from .evaluator import DeadlineEvaluator, SlaCompliance, SlaTargetStatus
from .policy import FIRST_RESPONSE, RESOLUTION, SlaDeadlines, SlaPolicy

__all__ = [
    "DeadlineEvaluator",
    "FIRST_RESPONSE",
    "RESOLUTION",
    "SlaCompliance",
    "SlaDeadlines",
    "SlaPolicy",
    "SlaTargetStatus",
]
