"""
Tests for execution records
"""

import pytest

from automation.errors import ExecutionStateError, UnresolvedReferenceError
from automation.runtime_data import (
    Execution,
    ExecutionStatus,
    StepError,
    StepResult,
    StepStatus,
)
from automation.runtime_data.state import utcnow


class TestExecutionStatus:
    def test_terminal_states(self):
        assert not ExecutionStatus.PENDING.is_terminal
        assert not ExecutionStatus.RUNNING.is_terminal
        for status in ("succeeded", "failed", "partial", "canceled"):
            assert ExecutionStatus(status).is_terminal


class TestExecution:
    def test_create(self):
        input = {"build": {"id": 1}}

        execution = Execution.create("w1", input)
        input["build"]["id"] = 2

        assert execution.status == ExecutionStatus.PENDING
        assert execution.input == {"build": {"id": 1}}
        assert execution.started_at is not None
        assert execution.started_at.tzinfo is not None
        assert execution.finished_at is None
        assert Execution.create("w1").id != execution.id

    def test_forward_transitions(self):
        execution = Execution.create("w1")

        execution.transition(ExecutionStatus.RUNNING)
        assert execution.finished_at is None

        execution.transition(ExecutionStatus.PARTIAL)
        assert execution.is_terminal
        assert execution.finished_at >= execution.started_at

    @pytest.mark.parametrize(
        "path",
        [
            [ExecutionStatus.SUCCEEDED],
            [ExecutionStatus.RUNNING, ExecutionStatus.PENDING],
            [ExecutionStatus.RUNNING, ExecutionStatus.FAILED, ExecutionStatus.RUNNING],
            [ExecutionStatus.RUNNING, ExecutionStatus.RUNNING],
        ],
    )
    def test_illegal_transitions(self, path):
        execution = Execution.create("w1")

        with pytest.raises(ExecutionStateError):
            for status in path:
                execution.transition(status)

    def test_terminal_execution_rejects_step_results(self):
        execution = Execution.create("w1")
        execution.transition(ExecutionStatus.RUNNING)
        execution.transition(ExecutionStatus.SUCCEEDED)

        with pytest.raises(ExecutionStateError):
            execution.add_step_result(StepResult.succeeded("s1", None, utcnow()))

    def test_has_failures(self):
        execution = Execution.create("w1")
        execution.transition(ExecutionStatus.RUNNING)
        execution.add_step_result(StepResult.skipped("s1", utcnow()))
        assert not execution.has_failures()

        execution.add_step_result(
            StepResult.failed("s2", RuntimeError("boom"), utcnow())
        )
        assert execution.has_failures()

    def test_snapshot_is_independent(self):
        execution = Execution.create("w1")
        execution.bind_output("r1", {"status": "sent"})

        snapshot = execution.snapshot()
        execution.outputs["r1"]["status"] = "changed"

        assert snapshot.outputs == {"r1": {"status": "sent"}}

    def test_dict_round_trip(self):
        execution = Execution.create("w1", {"k": "v"})
        execution.transition(ExecutionStatus.RUNNING)
        execution.add_step_result(StepResult.succeeded("s1", {"ok": True}, utcnow()))
        execution.add_step_result(
            StepResult.skipped("s2", utcnow(), error=UnresolvedReferenceError("x.y"))
        )
        execution.bind_output("out", {"ok": True})
        execution.transition(ExecutionStatus.SUCCEEDED)

        data = execution.to_dict()

        assert data["status"] == "succeeded"
        assert data["step_results"][1]["error"] == {
            "type": "UnresolvedReferenceError",
            "message": "Unresolved reference '${x.y}'",
        }
        assert Execution.from_dict(data) == execution

    def test_repr(self):
        execution = Execution.create("w1")

        assert repr(execution) == (
            f"Execution(id={execution.id}, workflow_id=w1, status=pending, steps=0)"
        )


class TestStepResult:
    def test_failed_records_error_type(self):
        result = StepResult.failed("s1", ValueError("bad"), utcnow())

        assert result.status == StepStatus.FAILED
        assert result.error == StepError(type="ValueError", message="bad")
        assert result.output is None
        assert result.finished_at >= result.started_at

    def test_skipped_without_error(self):
        result = StepResult.skipped("s1", utcnow())

        assert result.status == StepStatus.SKIPPED
        assert result.error is None
