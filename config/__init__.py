"""
Workflow Engine Configuration Package.

This package contains the settings manager and the validated settings model.
"""

from config.manager import EnvironmentManager
from config.types import WorkflowSettings

__all__ = [
    "EnvironmentManager",
    "WorkflowSettings",
]
