"""Bulk generation orchestrator: ledger, runner, completion views and controller."""

from .completion import Completion, CompletionAggregator
from .controller import ControllerSnapshot, RunController, RunSummary
from .ledger import LogEntry, LogKind, ProgressLedger, TopicProgress
from .rate_gate import RateGate
from .run_state import RunContext, RunScope, RunState, RunStatus
from .runner import SequentialRunner, TopicOutcome, WorkItem

__all__ = [
    "Completion",
    "CompletionAggregator",
    "ControllerSnapshot",
    "LogEntry",
    "LogKind",
    "ProgressLedger",
    "RateGate",
    "RunContext",
    "RunController",
    "RunScope",
    "RunState",
    "RunStatus",
    "RunSummary",
    "SequentialRunner",
    "TopicOutcome",
    "WorkItem",
]
