"""
Script engine (Python, RestrictedPython) and AgentValue conversion.

Exports: ScriptEngine, get_engine, compile_program, CompiledProgram,
to_native, from_native, ForeignValue and the script/conversion errors.
"""

from .convert import (
    ConversionDepthError,
    ConversionError,
    ForeignValue,
    UnsupportedNativeType,
    from_native,
    to_native,
)
from .engine import (
    ScriptCompileError,
    ScriptEngine,
    ScriptError,
    ScriptRuntimeError,
    clear_program_cache,
    compile_program,
    get_engine,
)
from .sandbox import CompiledProgram, build_restricted_globals, compile_script

__all__ = [
    "CompiledProgram",
    "ConversionDepthError",
    "ConversionError",
    "ForeignValue",
    "ScriptCompileError",
    "ScriptEngine",
    "ScriptError",
    "ScriptRuntimeError",
    "UnsupportedNativeType",
    "build_restricted_globals",
    "clear_program_cache",
    "compile_program",
    "compile_script",
    "from_native",
    "get_engine",
    "to_native",
]
