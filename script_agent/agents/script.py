"""
Script agent: runs a configured Python script on every incoming value.

The script sees the incoming value bound as ``value`` and its result is
emitted on the ``value`` output. An empty script disables the agent: inputs
are accepted and nothing is emitted.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from script_agent.core.config import settings
from script_agent.core.errors import ConfigError
from script_agent.engines.script import (
    CompiledProgram,
    ScriptCompileError,
    compile_program,
    from_native,
    get_engine,
    to_native,
)
from script_agent.models import AgentValue

from .base import (
    AgentConfigs,
    AgentContext,
    AgentDefinition,
    AsAgent,
    ConfigSpec,
    ConfigTypeEnum,
    register_agent,
)

if TYPE_CHECKING:
    from .host import AgentHost

_log = logging.getLogger(__name__)

CATEGORY = "Script"
PORT_VALUE = "value"
CONFIG_SCRIPT = "script"


@register_agent
class ScriptAgent(AsAgent):
    definition = AgentDefinition(
        name="ScriptAgent",
        title="Python Script",
        category=CATEGORY,
        inputs=[PORT_VALUE],
        outputs=[PORT_VALUE],
        configs=[
            ConfigSpec(name=CONFIG_SCRIPT, title="Script", type=ConfigTypeEnum.TEXT, default=""),
        ],
    )

    def __init__(
        self,
        host: AgentHost,
        id: str,
        def_name: str,
        configs: AgentConfigs | None = None,
    ) -> None:
        super().__init__(host, id, def_name, configs)
        self._lock = threading.RLock()  # re-entered when an output listener feeds back into this agent
        self._program: CompiledProgram | None = None
        script = ""
        if configs is not None:
            try:
                script = configs.get_string(CONFIG_SCRIPT)
            except ConfigError:
                script = ""
        if script:
            self._program = compile_program(script)

    @property
    def program(self) -> CompiledProgram | None:
        return self._program

    @property
    def is_ready(self) -> bool:
        return self._program is not None

    def configs_changed(self) -> None:
        """
        Recompile from the current script config.

        Empty script: disable. Compile failure: the error is raised; the
        previous program is dropped unless SCRIPT_KEEP_PROGRAM_ON_COMPILE_ERROR.
        """
        script = self.configs().get_string(CONFIG_SCRIPT)
        with self._lock:
            if not script:
                if self._program is not None:
                    _log.info("Agent %s: script cleared, disabled", self.id)
                self._program = None
                return
            try:
                program = compile_program(script)
            except ScriptCompileError:
                if not settings.SCRIPT_KEEP_PROGRAM_ON_COMPILE_ERROR:
                    self._program = None
                    _log.info("Agent %s: script failed to compile, disabled", self.id)
                raise
            self._program = program

    def process(self, ctx: AgentContext, port: str, value: AgentValue) -> None:
        with self._lock:
            program = self._program
            if program is None:
                return
            result = get_engine().execute(program, {PORT_VALUE: to_native(value)})
            out_value = from_native(result)
            self.try_output(ctx, PORT_VALUE, out_value)
