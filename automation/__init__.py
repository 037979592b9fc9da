"""
Workflow Automation

Runs multi-step automation sequences ("a build failed -> analyze -> notify")
as persisted, resumable, conditionally-branching step sequences.

This package provides:
- Workflows: definitions, registry, variable resolution, conditions, engine
- Agents: the capability registry steps dispatch into
- Runtime data: execution records and execution stores
- Runtime: the context object wiring it all together
"""

from .agents import CapabilityRegistry
from .errors import (
    ActionExecutionError,
    ActionNotFoundError,
    AgentNotFoundError,
    ConditionEvaluationError,
    ExecutionNotFoundError,
    ExecutionStateError,
    InvalidDefinitionError,
    PersistenceError,
    UnresolvedReferenceError,
    WorkflowError,
    WorkflowNotFoundError,
)
from .runtime import WorkflowRuntime, setup_logging
from .runtime_data import (
    Execution,
    ExecutionFilter,
    ExecutionStatus,
    ExecutionStore,
    FileSystemExecutionStore,
    MemoryExecutionStore,
    StepError,
    StepResult,
    StepStatus,
)
from .workflows import (
    ConditionEvaluator,
    StepDefinition,
    VariableResolver,
    WorkflowDefinition,
    WorkflowEngine,
    WorkflowRegistry,
    load_workflows,
)

__all__ = [
    "ActionExecutionError",
    "ActionNotFoundError",
    "AgentNotFoundError",
    "CapabilityRegistry",
    "ConditionEvaluationError",
    "ConditionEvaluator",
    "Execution",
    "ExecutionFilter",
    "ExecutionNotFoundError",
    "ExecutionStateError",
    "ExecutionStatus",
    "ExecutionStore",
    "FileSystemExecutionStore",
    "InvalidDefinitionError",
    "MemoryExecutionStore",
    "PersistenceError",
    "StepDefinition",
    "StepError",
    "StepResult",
    "StepStatus",
    "UnresolvedReferenceError",
    "VariableResolver",
    "WorkflowDefinition",
    "WorkflowEngine",
    "WorkflowError",
    "WorkflowNotFoundError",
    "WorkflowRegistry",
    "WorkflowRuntime",
    "load_workflows",
    "setup_logging",
]
