"""
Execution State

Execution records, step results and the execution state machine.
"""

import uuid
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import ExecutionStateError


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class ExecutionStatus(str, Enum):
    """Workflow execution status."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PARTIAL = "partial"  # Ran to completion with at least one failed step
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self not in (ExecutionStatus.PENDING, ExecutionStatus.RUNNING)


# Allowed forward transitions; terminal states have none.
_TRANSITIONS = {
    ExecutionStatus.PENDING: {ExecutionStatus.RUNNING},
    ExecutionStatus.RUNNING: {
        ExecutionStatus.SUCCEEDED,
        ExecutionStatus.FAILED,
        ExecutionStatus.PARTIAL,
        ExecutionStatus.CANCELED,
    },
}


class StepStatus(str, Enum):
    """Status of a recorded workflow step."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StepError:
    """Error attached to a step result."""

    type: str
    message: str

    @classmethod
    def from_exception(cls, error: BaseException) -> "StepError":
        return cls(type=type(error).__name__, message=str(error))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "message": self.message}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StepError":
        return cls(type=data["type"], message=data.get("message", ""))


@dataclass
class StepResult:
    """
    Result of one step of an execution.

    ``output`` is only set for succeeded steps. ``error`` is set for failed
    steps and for skipped steps whose condition could not be evaluated.
    """

    step_id: str
    status: StepStatus
    output: Any = None
    error: Optional[StepError] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @classmethod
    def succeeded(
        cls, step_id: str, output: Any, started_at: datetime
    ) -> "StepResult":
        return cls(
            step_id=step_id,
            status=StepStatus.SUCCEEDED,
            output=output,
            started_at=started_at,
            finished_at=utcnow(),
        )

    @classmethod
    def failed(
        cls, step_id: str, error: BaseException, started_at: datetime
    ) -> "StepResult":
        return cls(
            step_id=step_id,
            status=StepStatus.FAILED,
            error=StepError.from_exception(error),
            started_at=started_at,
            finished_at=utcnow(),
        )

    @classmethod
    def skipped(
        cls,
        step_id: str,
        started_at: datetime,
        error: Optional[BaseException] = None,
    ) -> "StepResult":
        return cls(
            step_id=step_id,
            status=StepStatus.SKIPPED,
            error=StepError.from_exception(error) if error else None,
            started_at=started_at,
            finished_at=utcnow(),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "step_id": self.step_id,
            "status": self.status.value,
            "output": self.output,
            "error": self.error.to_dict() if self.error else None,
            "started_at": _format_time(self.started_at),
            "finished_at": _format_time(self.finished_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StepResult":
        """Create from dictionary."""
        return cls(
            step_id=data["step_id"],
            status=StepStatus(data["status"]),
            output=data.get("output"),
            error=StepError.from_dict(data["error"]) if data.get("error") else None,
            started_at=_parse_time(data.get("started_at")),
            finished_at=_parse_time(data.get("finished_at")),
        )


@dataclass
class Execution:
    """
    One run of a workflow definition against a concrete input.

    Mutated only by the engine running it. Status moves forward through
    pending -> running -> {succeeded, failed, partial, canceled}; once it is
    terminal the record no longer changes.
    """

    id: str
    workflow_id: str
    status: ExecutionStatus = ExecutionStatus.PENDING
    input: Any = field(default_factory=dict)
    outputs: Dict[str, Any] = field(default_factory=dict)
    step_results: List[StepResult] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None

    @classmethod
    def create(cls, workflow_id: str, input: Any = None) -> "Execution":
        """Create a pending execution with a fresh id."""
        return cls(
            id=str(uuid.uuid4()),
            workflow_id=workflow_id,
            input=deepcopy(input) if input is not None else {},
            started_at=utcnow(),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def transition(self, status: ExecutionStatus) -> None:
        """
        Move to a new status.

        Raises:
            ExecutionStateError: If the transition is not a forward one
        """
        if status not in _TRANSITIONS.get(self.status, set()):
            raise ExecutionStateError(
                f"Execution {self.id}: illegal transition "
                f"{self.status.value} -> {status.value}"
            )
        self.status = status
        if status.is_terminal:
            self.finished_at = utcnow()

    def add_step_result(self, result: StepResult) -> None:
        if self.is_terminal:
            raise ExecutionStateError(
                f"Execution {self.id} is {self.status.value}; "
                f"cannot record step '{result.step_id}'"
            )
        self.step_results.append(result)

    def bind_output(self, name: str, value: Any) -> None:
        # Last write wins
        self.outputs[name] = value

    def has_failures(self) -> bool:
        return any(r.status == StepStatus.FAILED for r in self.step_results)

    def snapshot(self) -> "Execution":
        """Deep copy, safe to hand to a store."""
        return deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted document."""
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "status": self.status.value,
            "input": deepcopy(self.input),
            "outputs": deepcopy(self.outputs),
            "step_results": [r.to_dict() for r in self.step_results],
            "started_at": _format_time(self.started_at),
            "finished_at": _format_time(self.finished_at),
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Execution":
        """Create from the persisted document."""
        return cls(
            id=data["id"],
            workflow_id=data["workflow_id"],
            status=ExecutionStatus(data["status"]),
            input=data.get("input", {}),
            outputs=data.get("outputs", {}),
            step_results=[
                StepResult.from_dict(r) for r in data.get("step_results", [])
            ],
            started_at=_parse_time(data.get("started_at")),
            finished_at=_parse_time(data.get("finished_at")),
            error=data.get("error"),
        )

    def __repr__(self) -> str:
        return (
            f"Execution(id={self.id}, workflow_id={self.workflow_id}, "
            f"status={self.status.value}, steps={len(self.step_results)})"
        )
