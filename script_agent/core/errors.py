"""
Errors surfaced to the pipeline host.

Every failure an agent reports derives from AgentError so the host can treat
construction, reconfiguration and per-value failures through one channel.
"""


class AgentError(Exception):
    """Base class for errors reported by an agent to its host."""

    pass


class ConfigError(AgentError):
    """Raised when a configuration value is missing or has the wrong type."""

    pass
