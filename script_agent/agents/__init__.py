"""
Agents and the in-process host.

Importing this package registers ScriptAgent.
"""

from .base import (
    AgentConfigs,
    AgentContext,
    AgentDefinition,
    AsAgent,
    ConfigSpec,
    ConfigTypeEnum,
    agent_definitions,
    get_agent_class,
    register_agent,
)
from .host import AgentHost
from .script import CONFIG_SCRIPT, PORT_VALUE, ScriptAgent

__all__ = [
    "AgentConfigs",
    "AgentContext",
    "AgentDefinition",
    "AgentHost",
    "AsAgent",
    "CONFIG_SCRIPT",
    "ConfigSpec",
    "ConfigTypeEnum",
    "PORT_VALUE",
    "ScriptAgent",
    "agent_definitions",
    "get_agent_class",
    "register_agent",
]
