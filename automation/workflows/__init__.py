"""
Workflow System

Persisted, resumable, conditionally-branching step sequences.

This module provides:
- Workflow definition and validation (YAML or dict based)
- A registry of definitions and a loader for definition directories
- ${...} variable resolution and guard condition evaluation
- The execution engine
"""

from .conditions import ConditionEvaluator
from .definition import StepDefinition, TriggerDefinition, WorkflowDefinition
from .engine import WorkflowEngine
from .loader import load_workflows
from .registry import WorkflowRegistry
from .resolver import VariableResolver

__all__ = [
    "ConditionEvaluator",
    "StepDefinition",
    "TriggerDefinition",
    "WorkflowDefinition",
    "WorkflowEngine",
    "WorkflowRegistry",
    "VariableResolver",
    "load_workflows",
]
