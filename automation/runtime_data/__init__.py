"""
Runtime Data Module

Manages runtime data for automation workflows:
- State: Execution records and step results (Execution, StepResult, statuses)
- Storage: Execution persistence (ExecutionStore and its implementations)
"""

from .state import (
    Execution,
    ExecutionStatus,
    StepError,
    StepResult,
    StepStatus,
)
from .storage import (
    ExecutionFilter,
    ExecutionStore,
    FileSystemExecutionStore,
    MemoryExecutionStore,
)

__all__ = [
    # State
    "Execution",
    "ExecutionStatus",
    "StepError",
    "StepResult",
    "StepStatus",
    # Storage
    "ExecutionFilter",
    "ExecutionStore",
    "FileSystemExecutionStore",
    "MemoryExecutionStore",
]
