"""
Shared fixtures for workflow tests.
"""

import pytest
from unittest.mock import MagicMock

from automation.agents import CapabilityRegistry
from automation.runtime_data import MemoryExecutionStore
from automation.workflows import WorkflowDefinition, WorkflowEngine, WorkflowRegistry


def _make_workflow(workflow_id, steps, name=None):
    return WorkflowDefinition.from_dict(
        {"id": workflow_id, "name": name or workflow_id, "steps": steps}
    )


@pytest.fixture
def make_workflow():
    """Build a definition from step dicts in the document format."""
    return _make_workflow


@pytest.fixture
def capabilities():
    return CapabilityRegistry()


@pytest.fixture
def workflow_registry():
    return WorkflowRegistry()


@pytest.fixture
def store():
    return MemoryExecutionStore()


@pytest.fixture
def engine(workflow_registry, capabilities, store):
    return WorkflowEngine(
        registry=workflow_registry,
        capabilities=capabilities,
        store=store,
        step_timeout=5.0,
        persist_timeout=5.0,
    )


@pytest.fixture
def recording_handler():
    """Factory for MagicMock handlers returning a fixed output."""

    def factory(output=None, side_effect=None):
        handler = MagicMock(return_value=output)
        if side_effect is not None:
            handler.side_effect = side_effect
        return handler

    return factory
