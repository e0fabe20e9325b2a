"""Failover - Scenario evaluation and orchestration."""

from .evaluator import Evaluation, Scenario, classify, evaluate
from .orchestrator import FailoverOrchestrator, FailoverState, Step, StepRecord

__all__ = [
    "Evaluation",
    "Scenario",
    "classify",
    "evaluate",
    "FailoverOrchestrator",
    "FailoverState",
    "Step",
    "StepRecord",
]
