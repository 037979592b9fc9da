"""
Workflow Registry

Holds named, ordered step sequences keyed by workflow id.
"""

import logging
import threading
from copy import deepcopy
from typing import Dict, List

from ..errors import InvalidDefinitionError, WorkflowNotFoundError
from .definition import WorkflowDefinition


class WorkflowRegistry:
    """
    Registry of workflow definitions.

    Read by many executions, written rarely. Each registration replaces the
    entry for its id in one assignment under a lock, so readers see either
    the old or the new definition, never a partial one.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._workflows: Dict[str, WorkflowDefinition] = {}
        self._lock = threading.Lock()

    def register(self, definition: WorkflowDefinition) -> None:
        """
        Register a workflow, replacing any definition with the same id.

        Args:
            definition: Workflow definition

        Raises:
            InvalidDefinitionError: If the definition fails validation
        """
        errors = definition.validate()
        if errors:
            raise InvalidDefinitionError(definition.id, errors)

        # Stored definitions are never shared with the caller
        stored = deepcopy(definition)
        with self._lock:
            replaced = stored.id in self._workflows
            self._workflows[stored.id] = stored

        self.logger.info(
            f"Workflow {'re-registered' if replaced else 'registered'}: "
            f"{stored.id} ({len(stored.steps)} steps)"
        )

    def unregister(self, workflow_id: str) -> None:
        with self._lock:
            if workflow_id not in self._workflows:
                raise WorkflowNotFoundError(workflow_id)
            del self._workflows[workflow_id]
        self.logger.info(f"Workflow unregistered: {workflow_id}")

    def get(self, workflow_id: str) -> WorkflowDefinition:
        """
        Get a workflow by id.

        Raises:
            WorkflowNotFoundError: If the id is not registered
        """
        with self._lock:
            definition = self._workflows.get(workflow_id)
        if definition is None:
            raise WorkflowNotFoundError(workflow_id)
        return definition

    def list(self) -> List[str]:
        """Registered workflow ids, in registration order."""
        with self._lock:
            return list(self._workflows.keys())

    def find_by_event(self, event: str) -> List[WorkflowDefinition]:
        """Workflows triggered by the given event name."""
        with self._lock:
            definitions = list(self._workflows.values())
        return [
            d
            for d in definitions
            if d.trigger and d.trigger.type == "event" and d.trigger.event == event
        ]

    def __contains__(self, workflow_id: str) -> bool:
        with self._lock:
            return workflow_id in self._workflows

    def __len__(self) -> int:
        with self._lock:
            return len(self._workflows)
