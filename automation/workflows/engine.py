"""
Workflow Engine

Execute workflows step by step, persisting the execution after every step.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Set

from ..agents import CapabilityRegistry
from ..errors import (
    ActionExecutionError,
    ActionNotFoundError,
    AgentNotFoundError,
    ConditionEvaluationError,
    ExecutionNotFoundError,
    ExecutionStateError,
    PersistenceError,
)
from ..runtime_data import (
    Execution,
    ExecutionFilter,
    ExecutionStatus,
    ExecutionStore,
    MemoryExecutionStore,
    StepResult,
    StepStatus,
)
from ..runtime_data.state import utcnow
from .conditions import ConditionEvaluator
from .definition import StepDefinition, WorkflowDefinition
from .registry import WorkflowRegistry
from .resolver import VariableResolver

DEFAULT_STEP_TIMEOUT = 300.0
DEFAULT_PERSIST_TIMEOUT = 30.0
DEFAULT_LIST_LIMIT = 10
DEFAULT_RETENTION_DAYS = 7


class WorkflowEngine:
    """
    Workflow execution engine.

    Runs one execution of a registered workflow at a time per call, strictly
    sequentially, persisting a snapshot after every step. Distinct executions
    may run concurrently; each execution id has a single writer.
    """

    def __init__(
        self,
        registry: WorkflowRegistry,
        capabilities: CapabilityRegistry,
        store: Optional[ExecutionStore] = None,
        resolver: Optional[VariableResolver] = None,
        evaluator: Optional[ConditionEvaluator] = None,
        step_timeout: float = DEFAULT_STEP_TIMEOUT,
        persist_timeout: float = DEFAULT_PERSIST_TIMEOUT,
        default_list_limit: int = DEFAULT_LIST_LIMIT,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ):
        """
        Initialize workflow engine.

        Args:
            registry: Workflow definitions to execute
            capabilities: Agent capabilities steps dispatch into
            store: Execution store. Defaults to an in-memory store.
            resolver: Variable resolver for step input templates
            evaluator: Condition evaluator for step guards
            step_timeout: Default per-dispatch timeout in seconds
            persist_timeout: Per-write timeout for store calls in seconds
            default_list_limit: Limit used by list_executions when none given
            retention_days: Default retention for cleanup_executions
        """
        self.logger = logging.getLogger(__name__)
        self.registry = registry
        self.capabilities = capabilities
        self.store = store if store is not None else MemoryExecutionStore()
        self.resolver = resolver or VariableResolver()
        self.evaluator = evaluator or ConditionEvaluator(self.resolver)
        self.step_timeout = step_timeout
        self.persist_timeout = persist_timeout
        self.default_list_limit = default_list_limit
        self.retention_days = retention_days

        self._active: Set[str] = set()
        self._cancel_requested: Set[str] = set()
        self._locks: Dict[str, asyncio.Lock] = {}

    async def execute(self, workflow_id: str, input: Any = None) -> Execution:
        """
        Execute a workflow.

        Step failures are recorded on the returned execution and never raised.

        Args:
            workflow_id: Registered workflow id
            input: Caller-supplied input, visible to templates and conditions

        Returns:
            The finished execution

        Raises:
            WorkflowNotFoundError: If the workflow is not registered
            PersistenceError: If the execution cannot be persisted
        """
        workflow = self.registry.get(workflow_id)

        execution = Execution.create(workflow.id, input)
        execution.transition(ExecutionStatus.RUNNING)

        self._claim(execution.id)
        try:
            self.logger.info(
                f"Starting workflow '{workflow.id}' (execution: {execution.id})"
            )
            return await self._run(workflow, execution)
        finally:
            self._release(execution.id)

    async def resume(self, execution_id: str) -> Execution:
        """
        Continue an execution left in the running state by a crash.

        Steps already recorded are not run again.

        Raises:
            ExecutionNotFoundError: If the execution does not exist
            ExecutionStateError: If it is not running or is active here
            WorkflowNotFoundError: If its workflow is no longer registered
        """
        # Claimed before the first await; the record is read only by its owner
        self._claim(execution_id)
        try:
            execution = await self.get_execution(execution_id)
            if execution.status != ExecutionStatus.RUNNING:
                raise ExecutionStateError(
                    f"Execution {execution_id} is {execution.status.value}, not running"
                )

            workflow = self.registry.get(execution.workflow_id)

            self.logger.info(
                f"Resuming workflow '{workflow.id}' (execution: {execution.id}) "
                f"after {len(execution.step_results)} recorded steps"
            )
            return await self._run(workflow, execution)
        finally:
            self._release(execution_id)

    def cancel(self, execution_id: str) -> bool:
        """
        Request cooperative cancellation, honoured before the next step.

        Returns:
            False if the execution is not running in this process
        """
        if execution_id not in self._active:
            return False
        self._cancel_requested.add(execution_id)
        self.logger.info(f"Cancellation requested for execution {execution_id}")
        return True

    async def get_execution(self, execution_id: str) -> Execution:
        """
        Get an execution from the store.

        Raises:
            ExecutionNotFoundError: If the execution does not exist
        """
        execution = await self._call_store(self.store.load, execution_id)
        if execution is None:
            raise ExecutionNotFoundError(execution_id)
        return execution

    async def list_executions(
        self,
        workflow_id: Optional[str] = None,
        limit: Optional[int] = None,
        status: Optional[ExecutionStatus] = None,
    ) -> List[Execution]:
        """
        List executions, newest started_at first.

        Args:
            workflow_id: Only executions of this workflow
            limit: Maximum number of executions to return
            status: Only executions in this status

        Returns:
            At most ``limit`` executions
        """
        if limit is None:
            limit = self.default_list_limit
        return await self._call_store(
            self.store.list, ExecutionFilter(workflow_id=workflow_id, status=status), limit
        )

    async def cleanup_executions(self, retention_days: Optional[int] = None) -> int:
        """
        Delete terminal executions older than the retention window.

        Returns:
            Number of executions deleted
        """
        days = self.retention_days if retention_days is None else retention_days
        cutoff = utcnow() - timedelta(days=days)
        deleted = await self._call_store(self.store.cleanup, cutoff)
        self.logger.info(f"Deleted {deleted} executions finished before {cutoff}")
        return deleted

    def get_stats(self) -> Dict[str, Any]:
        """Registry and activity counters."""
        return {
            "registeredWorkflows": len(self.registry),
            "activeExecutions": len(self._active),
            "workflows": self.registry.list(),
        }

    async def _run(self, workflow: WorkflowDefinition, execution: Execution) -> Execution:
        """Run the steps of a workflow not yet recorded on the execution."""
        lock = self._locks.setdefault(execution.id, asyncio.Lock())

        try:
            async with lock:
                await self._persist(execution)

                start = len(execution.step_results)
                halted = self._halted_by_recorded_failure(workflow, execution)
                canceled = False

                for step in workflow.steps[start:]:
                    if halted:
                        break
                    if execution.id in self._cancel_requested:
                        canceled = True
                        execution.error = f"Canceled before step '{step.id}'"
                        self.logger.info(
                            f"Execution {execution.id} canceled before step '{step.id}'"
                        )
                        break

                    result = await self._execute_step(step, execution)
                    execution.add_step_result(result)
                    await self._persist(execution)

                    if result.status == StepStatus.FAILED:
                        if step.continue_on_error:
                            self.logger.warning(
                                f"Step '{step.id}' failed but continuing: "
                                f"{result.error.message}"
                            )
                        else:
                            halted = True
                            execution.error = (
                                f"Step '{step.id}' failed: {result.error.message}"
                            )

                execution.transition(self._determine_status(execution, halted, canceled))
                await self._persist(execution)

        except PersistenceError:
            self.logger.error(
                f"Execution {execution.id} of '{workflow.id}' aborted: "
                f"state could not be persisted",
                exc_info=True,
            )
            raise

        self.logger.info(
            f"Workflow '{workflow.id}' (execution: {execution.id}) completed "
            f"with status: {execution.status.value}"
        )
        return execution

    def _claim(self, execution_id: str):
        """
        Mark an execution as owned by this engine.

        Raises:
            ExecutionStateError: If it is already running in this process
        """
        if execution_id in self._active:
            raise ExecutionStateError(
                f"Execution {execution_id} is already running in this process"
            )
        self._active.add(execution_id)

    def _release(self, execution_id: str):
        self._active.discard(execution_id)
        self._cancel_requested.discard(execution_id)
        self._locks.pop(execution_id, None)

    async def _execute_step(self, step: StepDefinition, execution: Execution) -> StepResult:
        """
        Execute one step: guard, resolve input, dispatch, bind output.

        Never raises for step-level errors; they are returned on the result.
        """
        started_at = utcnow()

        if step.condition is not None:
            try:
                should_run = self.evaluator.evaluate(
                    step.condition, execution.outputs, execution.input
                )
            except ConditionEvaluationError as e:
                self.logger.warning(
                    f"Step '{step.id}' skipped: condition "
                    f"{step.condition!r} could not be evaluated: {e}"
                )
                return StepResult.skipped(step.id, started_at, error=e)

            if not should_run:
                self.logger.debug(f"Step '{step.id}' skipped (condition not met)")
                return StepResult.skipped(step.id, started_at)

        try:
            resolved_input = self.resolver.resolve(
                step.input, execution.outputs, execution.input
            )
        except Exception as e:
            self.logger.error(
                f"Step '{step.id}' failed: could not resolve input: {e}", exc_info=True
            )
            return StepResult.failed(step.id, e, started_at)

        timeout = step.timeout or self.step_timeout

        self.logger.info(
            f"Executing step '{step.id}': "
            f"agent={step.agent_type}, action={step.action}"
        )

        try:
            output = await asyncio.wait_for(
                self.capabilities.invoke(step.agent_type, step.action, resolved_input),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            error = ActionExecutionError(
                step.agent_type, step.action, f"timed out after {timeout}s"
            )
            self.logger.error(f"Step '{step.id}' failed: {error}")
            return StepResult.failed(step.id, error, started_at)
        except (AgentNotFoundError, ActionNotFoundError, ActionExecutionError) as e:
            self.logger.error(f"Step '{step.id}' failed: {e}")
            return StepResult.failed(step.id, e, started_at)
        except Exception as e:
            error = ActionExecutionError(step.agent_type, step.action, str(e), original=e)
            self.logger.error(f"Step '{step.id}' failed: {error}", exc_info=True)
            return StepResult.failed(step.id, error, started_at)

        if step.output_variable:
            execution.bind_output(step.output_variable, output)

        return StepResult.succeeded(step.id, output, started_at)

    def _halted_by_recorded_failure(
        self, workflow: WorkflowDefinition, execution: Execution
    ) -> bool:
        # A resumed record may end in a fail-fast failure that was persisted
        # before the final status was.
        if not execution.step_results:
            return False
        last = execution.step_results[-1]
        if last.status != StepStatus.FAILED:
            return False
        step = workflow.get_step(last.step_id)
        return step is None or not step.continue_on_error

    def _determine_status(
        self, execution: Execution, halted: bool, canceled: bool
    ) -> ExecutionStatus:
        """
        Determine final workflow status based on step results.

        Args:
            execution: The execution being finished
            halted: Whether a fail-fast step failure stopped the run
            canceled: Whether cancellation stopped the run

        Returns:
            Final execution status
        """
        if canceled:
            return ExecutionStatus.CANCELED
        if halted:
            return ExecutionStatus.FAILED
        if execution.has_failures():
            return ExecutionStatus.PARTIAL
        return ExecutionStatus.SUCCEEDED

    async def _persist(self, execution: Execution):
        """
        Save a snapshot of the execution.

        Raises:
            PersistenceError: If the store fails or times out
        """
        await self._call_store(self.store.save, execution.snapshot())

    async def _call_store(self, method: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking store call in a worker thread, bounded by a timeout."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(method, *args), timeout=self.persist_timeout
            )
        except asyncio.TimeoutError as e:
            raise PersistenceError(
                f"Execution store call {method.__name__} timed out after "
                f"{self.persist_timeout}s"
            ) from e
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(
                f"Execution store call {method.__name__} failed: {e}"
            ) from e
