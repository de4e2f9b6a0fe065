"""
Engines: script compilation/execution and value conversion.
"""

from script_agent.engines.script import (
    CompiledProgram,
    ScriptEngine,
    from_native,
    get_engine,
    to_native,
)

__all__ = [
    "CompiledProgram",
    "ScriptEngine",
    "get_engine",
    "to_native",
    "from_native",
]
