"""Pipeline agent that runs a user-authored Python script against AgentValues."""

from script_agent.agents import AgentConfigs, AgentContext, AgentHost, ScriptAgent
from script_agent.core.errors import AgentError, ConfigError
from script_agent.models import AgentValue, ValueKind

__all__ = [
    "AgentConfigs",
    "AgentContext",
    "AgentError",
    "AgentHost",
    "AgentValue",
    "ConfigError",
    "ScriptAgent",
    "ValueKind",
]
