"""
Agent Capability Registry

Explicit (agent_type, action) -> handler map that workflow steps dispatch into.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from ..errors import ActionExecutionError, ActionNotFoundError, AgentNotFoundError

# Handlers take the resolved step input and return the step output,
# either directly or as an awaitable.
CapabilityHandler = Callable[[Any], Union[Any, Awaitable[Any]]]


class CapabilityRegistry:
    """Registry of agent capabilities available to workflows."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._agents: Dict[str, Dict[str, CapabilityHandler]] = {}

    def register(self, agent_type: str, action: str, handler: CapabilityHandler):
        """
        Register a handler for one action of an agent.

        Args:
            agent_type: Agent name (e.g., "monitor")
            action: Action name (e.g., "analyzeBuild")
            handler: Callable taking the resolved step input
        """
        if not callable(handler):
            raise TypeError(f"Handler for {agent_type}.{action} is not callable")
        self._agents.setdefault(agent_type, {})[action] = handler
        self.logger.debug(f"Registered capability: {agent_type}.{action}")
        return self

    def register_agent(
        self, agent_type: str, actions: Mapping[str, CapabilityHandler]
    ):
        """Register several actions of one agent at once."""
        for action, handler in actions.items():
            self.register(agent_type, action, handler)
        return self

    def unregister(self, agent_type: str, action: Optional[str] = None):
        """Remove one action, or the whole agent when action is None."""
        if action is None:
            self._agents.pop(agent_type, None)
            return
        actions = self._agents.get(agent_type)
        if actions is not None:
            actions.pop(action, None)
            if not actions:
                del self._agents[agent_type]

    def get_handler(self, agent_type: str, action: str) -> CapabilityHandler:
        """
        Get the handler for an action.

        Raises:
            AgentNotFoundError: If no actions are registered for the agent
            ActionNotFoundError: If the agent lacks the action
        """
        actions = self._agents.get(agent_type)
        if actions is None:
            raise AgentNotFoundError(agent_type)
        handler = actions.get(action)
        if handler is None:
            raise ActionNotFoundError(agent_type, action)
        return handler

    def has_action(self, agent_type: str, action: str) -> bool:
        return action in self._agents.get(agent_type, {})

    def list_agents(self) -> List[str]:
        return list(self._agents.keys())

    def list_actions(self, agent_type: str) -> List[str]:
        if agent_type not in self._agents:
            raise AgentNotFoundError(agent_type)
        return list(self._agents[agent_type].keys())

    async def invoke(self, agent_type: str, action: str, input: Any) -> Any:
        """
        Execute an agent action.

        Args:
            agent_type: Agent name
            action: Action name
            input: Resolved step input

        Returns:
            Handler output

        Raises:
            AgentNotFoundError: If the agent is unknown
            ActionNotFoundError: If the action is unknown
            ActionExecutionError: If the handler raises
        """
        handler = self.get_handler(agent_type, action)

        try:
            if inspect.iscoroutinefunction(handler):
                result = await handler(input)
            else:
                # Plain handlers run in a worker thread
                result = await asyncio.to_thread(handler, input)
            if inspect.isawaitable(result):
                result = await result
        except ActionExecutionError:
            raise
        except Exception as e:
            raise ActionExecutionError(agent_type, action, str(e), original=e) from e

        return result
