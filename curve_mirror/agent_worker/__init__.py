"""
Agent worker package — copy-trade orchestration.

Sizes mirrored trades (policy), executes them (executor + submitter),
reports outcomes and drives the whole pipeline from a transaction source
(runner).
"""

from curve_mirror.agent_worker.executor import CopyExecutor, CopyOutcome, ExecutionState, OutcomeStatus
from curve_mirror.agent_worker.policy import CopyPolicy
from curve_mirror.agent_worker.reporter import TradeReporter
from curve_mirror.agent_worker.runner import MonitorLoop
from curve_mirror.agent_worker.submitter import SubmitResult, TransactionSubmitter

__all__ = [
    "CopyExecutor",
    "CopyOutcome",
    "CopyPolicy",
    "ExecutionState",
    "MonitorLoop",
    "OutcomeStatus",
    "SubmitResult",
    "TradeReporter",
    "TransactionSubmitter",
]
