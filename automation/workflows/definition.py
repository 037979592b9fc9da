"""
Workflow Definition

Parse, validate, and represent workflow definitions from YAML files or dicts.
"""

import yaml
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from ..errors import InvalidDefinitionError


TRIGGER_TYPES = ["event", "scheduled", "manual"]


@dataclass
class TriggerDefinition:
    """What starts a workflow (informational; scheduling is external)."""

    type: str = "manual"
    event: Optional[str] = None
    cron: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TriggerDefinition":
        """Create from dictionary."""
        return cls(
            type=data.get("type", "manual"),
            event=data.get("event"),
            cron=data.get("cron"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.type}
        if self.event:
            result["event"] = self.event
        if self.cron:
            result["cron"] = self.cron
        return result


@dataclass
class StepDefinition:
    """Workflow step definition."""

    id: str
    agent_type: str
    action: str
    input: Any = field(default_factory=dict)
    output_variable: Optional[str] = None
    condition: Optional[str] = None
    continue_on_error: bool = False
    timeout: Optional[float] = None  # Seconds; falls back to engine default

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StepDefinition":
        """
        Create from dictionary.

        Accepts the document spelling (agent, output, continueOnError) as
        well as the attribute names.

        Args:
            data: Step definition dictionary

        Returns:
            StepDefinition instance
        """
        continue_on_error = data.get(
            "continueOnError", data.get("continue_on_error", False)
        )
        return cls(
            id=data.get("id", ""),
            agent_type=data.get("agent", data.get("agent_type", "")),
            action=data.get("action", ""),
            input=deepcopy(data.get("input", {})),
            output_variable=data.get("output", data.get("output_variable")),
            condition=data.get("condition"),
            continue_on_error=continue_on_error,
            timeout=data.get("timeout"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the definition document format."""
        result: Dict[str, Any] = {
            "id": self.id,
            "agent": self.agent_type,
            "action": self.action,
            "input": deepcopy(self.input),
        }
        if self.output_variable:
            result["output"] = self.output_variable
        if self.condition is not None:
            result["condition"] = self.condition
        if self.continue_on_error:
            result["continueOnError"] = True
        if self.timeout is not None:
            result["timeout"] = self.timeout
        return result


@dataclass
class WorkflowDefinition:
    """
    Workflow definition.

    A named, ordered list of steps, keyed by ``id``.
    """

    id: str
    name: str = ""
    steps: List[StepDefinition] = field(default_factory=list)
    description: str = ""
    trigger: Optional[TriggerDefinition] = None

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "WorkflowDefinition":
        """
        Parse workflow from YAML string.

        Args:
            yaml_str: YAML workflow definition

        Returns:
            WorkflowDefinition instance

        Raises:
            InvalidDefinitionError: If YAML is invalid
        """
        try:
            data = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise InvalidDefinitionError(None, [f"Invalid YAML: {e}"]) from e

        if not isinstance(data, dict):
            raise InvalidDefinitionError(None, ["YAML must contain a mapping"])

        return cls.from_dict(data)

    @classmethod
    def from_file(cls, file_path: str) -> "WorkflowDefinition":
        """
        Load workflow from YAML file.

        Args:
            file_path: Path to YAML file

        Returns:
            WorkflowDefinition instance

        Raises:
            FileNotFoundError: If file doesn't exist
            InvalidDefinitionError: If YAML is invalid
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Workflow file not found: {file_path}")

        with open(path, "r") as f:
            yaml_str = f.read()

        return cls.from_yaml(yaml_str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowDefinition":
        """
        Create from dictionary.

        Args:
            data: Workflow definition dictionary, optionally wrapped in a
                top-level "workflow" key

        Returns:
            WorkflowDefinition instance
        """
        if "workflow" in data and isinstance(data["workflow"], dict):
            data = data["workflow"]

        steps_data = data.get("steps") or []
        if not isinstance(steps_data, list):
            raise InvalidDefinitionError(
                data.get("id"), ["'steps' must be a list"]
            )

        steps = []
        for step_data in steps_data:
            if not isinstance(step_data, dict):
                raise InvalidDefinitionError(
                    data.get("id"), [f"Step must be a mapping, got {step_data!r}"]
                )
            steps.append(StepDefinition.from_dict(step_data))

        trigger_data = data.get("trigger")
        workflow_id = data.get("id", "")
        return cls(
            id=workflow_id,
            name=data.get("name") or workflow_id,
            steps=steps,
            description=data.get("description", ""),
            trigger=TriggerDefinition.from_dict(trigger_data) if trigger_data else None,
        )

    def validate(self) -> List[str]:
        """
        Validate workflow definition.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.id:
            errors.append("Workflow must have an id")

        seen = set()
        for index, step in enumerate(self.steps):
            label = step.id or f"#{index}"
            if not step.id:
                errors.append(f"Step {label} must have an id")
            elif step.id in seen:
                errors.append(f"Duplicate step id '{step.id}'")
            seen.add(step.id)

            if not step.agent_type:
                errors.append(f"Step '{label}' must specify 'agent'")
            if not step.action:
                errors.append(f"Step '{label}' must specify 'action'")
            if step.condition is not None and not isinstance(step.condition, str):
                errors.append(f"Step '{label}' condition must be a string")
            if not isinstance(step.continue_on_error, bool):
                errors.append(f"Step '{label}' continueOnError must be true or false")
            if step.timeout is not None and (
                not isinstance(step.timeout, (int, float)) or step.timeout <= 0
            ):
                errors.append(f"Step '{label}' timeout must be a positive number")

        if self.trigger and self.trigger.type not in TRIGGER_TYPES:
            errors.append(
                f"Trigger type '{self.trigger.type}' must be one of: "
                f"{', '.join(TRIGGER_TYPES)}"
            )

        return errors

    def get_step(self, step_id: str) -> Optional[StepDefinition]:
        """
        Get step by ID.

        Args:
            step_id: Step identifier

        Returns:
            StepDefinition or None if not found
        """
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary.

        Returns:
            Dictionary representation in the definition document format
        """
        result: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "steps": [step.to_dict() for step in self.steps],
        }
        if self.description:
            result["description"] = self.description
        if self.trigger:
            result["trigger"] = self.trigger.to_dict()
        return result

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"WorkflowDefinition(id='{self.id}', "
            f"name='{self.name}', steps={len(self.steps)})"
        )
