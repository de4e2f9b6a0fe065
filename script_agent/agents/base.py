"""
Agent contract shared with the pipeline host.

An agent is created by the host with an id, a definition name and optional
configs; the host calls configs_changed() after storing new configs and
process() once per value arriving on an input port. Agents push results
back through try_output(), which forwards to the host's emit().
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, NamedTuple

from pydantic import BaseModel, Field

from script_agent.core.errors import AgentError, ConfigError
from script_agent.models import AgentValue

if TYPE_CHECKING:
    from script_agent.agents.host import AgentHost


class ConfigTypeEnum(str, Enum):
    """Config field types understood by the host UI."""

    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"


class ConfigSpec(BaseModel):
    """One configuration field of an agent definition."""

    name: str = Field(..., min_length=1)
    title: str | None = None
    type: ConfigTypeEnum = ConfigTypeEnum.STRING
    default: Any = None


class AgentDefinition(BaseModel):
    """Registration metadata: ports and config fields of an agent kind."""

    name: str = Field(..., min_length=1)
    title: str | None = None
    category: str | None = None
    inputs: list[str] = Field(default_factory=list)
    outputs: list[str] = Field(default_factory=list)
    configs: list[ConfigSpec] = Field(default_factory=list)

    def default_configs(self) -> AgentConfigs:
        return AgentConfigs({c.name: c.default for c in self.configs if c.default is not None})


class AgentContext(NamedTuple):
    run_id: str

    @classmethod
    def new(cls) -> AgentContext:
        return cls(run_id=uuid.uuid4().hex)


class AgentConfigs:
    """String-keyed configuration values of one agent."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def get_string(self, key: str) -> str:
        """Return the text value for key. Raises ConfigError if missing or not a string."""
        if key not in self._values:
            raise ConfigError(f"Unknown config: {key}")
        value = self._values[key]
        if not isinstance(value, str):
            raise ConfigError(f"Config {key} is not a string: {type(value).__name__}")
        return value

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __repr__(self) -> str:
        return f"AgentConfigs({self._values!r})"


class AsAgent:
    """Base class for agents. Subclasses set `definition` and implement process()."""

    definition: ClassVar[AgentDefinition]

    def __init__(
        self,
        host: AgentHost,
        id: str,
        def_name: str,
        configs: AgentConfigs | None = None,
    ) -> None:
        self.host = host
        self.id = id
        self.def_name = def_name
        self._configs = configs

    def configs(self) -> AgentConfigs:
        if self._configs is None:
            raise ConfigError(f"Agent {self.id} has no configs")
        return self._configs

    def set_configs(self, configs: AgentConfigs) -> None:
        self._configs = configs

    def configs_changed(self) -> None:
        """Called by the host after set_configs(). Default: nothing to refresh."""

    def process(self, ctx: AgentContext, port: str, value: AgentValue) -> None:
        raise NotImplementedError

    def try_output(self, ctx: AgentContext, port: str, value: AgentValue) -> None:
        if port not in self.definition.outputs:
            raise AgentError(f"Agent {self.id} has no output port {port!r}")
        self.host.emit(ctx, self.id, port, value)


_registry: dict[str, type[AsAgent]] = {}


def register_agent(cls: type[AsAgent]) -> type[AsAgent]:
    """Class decorator: make an agent kind available to AgentHost.new_agent by definition name."""
    name = cls.definition.name
    if name in _registry and _registry[name] is not cls:
        raise ValueError(f"Agent definition already registered: {name}")
    _registry[name] = cls
    return cls


def get_agent_class(name: str) -> type[AsAgent]:
    cls = _registry.get(name)
    if cls is None:
        raise AgentError(f"Unknown agent definition: {name}")
    return cls


def agent_definitions() -> dict[str, AgentDefinition]:
    return {name: cls.definition for name, cls in _registry.items()}
