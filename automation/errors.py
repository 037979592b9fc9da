"""
Workflow Errors

Exception hierarchy for workflow registration, execution and persistence.
"""

from typing import List, Optional


class WorkflowError(Exception):
    """Base class for all workflow engine errors."""


class WorkflowNotFoundError(WorkflowError):
    """Raised when a workflow id is not registered."""

    def __init__(self, workflow_id: str):
        super().__init__(f"Workflow '{workflow_id}' not found")
        self.workflow_id = workflow_id


class InvalidDefinitionError(WorkflowError):
    """Raised when a workflow definition fails validation."""

    def __init__(self, workflow_id: Optional[str], errors: List[str]):
        super().__init__(
            f"Invalid workflow '{workflow_id}': {', '.join(errors)}"
        )
        self.workflow_id = workflow_id
        self.errors = list(errors)


class AgentNotFoundError(WorkflowError):
    """Raised when no capability is registered for an agent type."""

    def __init__(self, agent_type: str):
        super().__init__(f"Agent '{agent_type}' not found")
        self.agent_type = agent_type


class ActionNotFoundError(WorkflowError):
    """Raised when an agent does not provide the requested action."""

    def __init__(self, agent_type: str, action: str):
        super().__init__(f"Action '{action}' not found on agent '{agent_type}'")
        self.agent_type = agent_type
        self.action = action


class ActionExecutionError(WorkflowError):
    """Raised when a capability handler fails or times out."""

    def __init__(
        self,
        agent_type: str,
        action: str,
        message: str,
        original: Optional[BaseException] = None,
    ):
        super().__init__(f"{agent_type}.{action} failed: {message}")
        self.agent_type = agent_type
        self.action = action
        self.original = original


class ConditionEvaluationError(WorkflowError):
    """
    Raised when a step condition cannot be evaluated.

    The engine never lets this escape: it is recorded on the skipped step.
    """


class UnresolvedReferenceError(ConditionEvaluationError):
    """Raised by strict resolution when a ${path} reference has no value."""

    def __init__(self, path: str):
        super().__init__(f"Unresolved reference '${{{path}}}'")
        self.path = path


class PersistenceError(WorkflowError):
    """Raised when an execution snapshot cannot be saved or read."""


class ExecutionNotFoundError(WorkflowError):
    """Raised when an execution id is not present in the store."""

    def __init__(self, execution_id: str):
        super().__init__(f"Execution '{execution_id}' not found")
        self.execution_id = execution_id


class ExecutionStateError(WorkflowError):
    """Raised on an illegal execution state transition."""
