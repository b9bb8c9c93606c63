"""LangGraph-based run orchestration with pause/resume for human approval."""

from .engine import AgentRunner, default_output_text, estimate_usage, flatten_input
from .models import RunContext, RunnerDeps, SuspendedRunState
from .store import InMemorySuspendedRunStore, SuspendedRunStore

__all__ = [
    "AgentRunner",
    "default_output_text",
    "estimate_usage",
    "flatten_input",
    "RunContext",
    "RunnerDeps",
    "SuspendedRunState",
    "InMemorySuspendedRunStore",
    "SuspendedRunStore",
]
