"""
In-process agent host.

Creates agents from registered definitions, routes configuration updates and
incoming values to them, and fans emitted values and reported errors out to
listeners. Reconfiguration and per-value failures are reported, never raised,
so one failing agent cannot take the host down.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable

from script_agent.core.errors import AgentError
from script_agent.models import AgentValue

from .base import AgentConfigs, AgentContext, AsAgent, get_agent_class

_log = logging.getLogger(__name__)

OutputListener = Callable[[AgentContext, str, str, AgentValue], None]
ErrorListener = Callable[[AgentContext | None, str, AgentError], None]


class AgentHost:
    """Owns agent instances and the output/error channels."""

    def __init__(self) -> None:
        self._agents: dict[str, AsAgent] = {}
        self._lock = threading.Lock()
        self._output_listeners: list[OutputListener] = []
        self._error_listeners: list[ErrorListener] = []

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    def new_agent(
        self,
        def_name: str,
        agent_id: str | None = None,
        configs: AgentConfigs | None = None,
    ) -> AsAgent:
        """Create and register an agent. Construction errors propagate; nothing is registered then."""
        cls = get_agent_class(def_name)
        agent_id = agent_id or uuid.uuid4().hex
        if configs is None:
            configs = cls.definition.default_configs()
        agent = cls(self, agent_id, def_name, configs)
        with self._lock:
            if agent_id in self._agents:
                raise AgentError(f"Agent id already in use: {agent_id}")
            self._agents[agent_id] = agent
        _log.debug("Created agent %s (%s)", agent_id, def_name)
        return agent

    def get_agent(self, agent_id: str) -> AsAgent:
        with self._lock:
            agent = self._agents.get(agent_id)
        if agent is None:
            raise AgentError(f"Agent not found: {agent_id}")
        return agent

    def remove_agent(self, agent_id: str) -> None:
        with self._lock:
            self._agents.pop(agent_id, None)

    def update_configs(self, agent_id: str, configs: AgentConfigs) -> bool:
        """Store configs and notify the agent. Returns False if the agent reported an error."""
        agent = self.get_agent(agent_id)
        agent.set_configs(configs)
        try:
            agent.configs_changed()
        except AgentError as e:
            self.report_error(None, agent_id, e)
            return False
        return True

    def send(self, agent_id: str, ctx: AgentContext, port: str, value: AgentValue) -> bool:
        """Deliver one value to an agent input. Returns False if it was rejected or failed."""
        agent = self.get_agent(agent_id)
        try:
            if port not in agent.definition.inputs:
                raise AgentError(f"Agent {agent_id} has no input port {port!r}")
            agent.process(ctx, port, value)
        except AgentError as e:
            self.report_error(ctx, agent_id, e)
            return False
        return True

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def subscribe(self, listener: OutputListener) -> None:
        self._output_listeners.append(listener)

    def on_error(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    def emit(self, ctx: AgentContext, agent_id: str, port: str, value: AgentValue) -> None:
        for listener in list(self._output_listeners):
            listener(ctx, agent_id, port, value)

    def report_error(self, ctx: AgentContext | None, agent_id: str, error: AgentError) -> None:
        _log.warning("Agent %s error: %s", agent_id, error)
        for listener in list(self._error_listeners):
            listener(ctx, agent_id, error)
