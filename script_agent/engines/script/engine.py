"""
Shared script engine and compiled program cache.

One ScriptEngine per process, created on first use and never mutated after
that, so agents on any thread may compile and execute through it without
locking. Compiled programs are cached in an LRU dict keyed by source hash;
the cache has its own lock and lives outside the engine.
"""

import hashlib
import logging
import threading
from collections import OrderedDict
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from script_agent.core.config import settings
from script_agent.core.errors import AgentError

from .sandbox import (
    CompiledProgram,
    build_base_globals,
    build_restricted_globals,
    compile_script,
    load_extra_modules,
    run_program,
)

_log = logging.getLogger(__name__)


class ScriptError(AgentError):
    """Base class for script compile and runtime failures."""

    pass


class ScriptCompileError(ScriptError):
    """Raised when script source fails to parse or violates sandbox restrictions."""

    pass


class ScriptRuntimeError(ScriptError):
    """Raised when a compiled script fails while executing."""

    pass


class ScriptEngine:
    """Compiles scripts to CompiledProgram and runs them in a fresh scope."""

    def __init__(self, extra_modules: Mapping[str, Any] | None = None) -> None:
        self._globals = MappingProxyType(build_base_globals(extra_modules))

    @property
    def globals(self) -> Mapping[str, Any]:
        return self._globals

    def compile(self, source: str, filename: str = "<script>") -> CompiledProgram:
        """Compile source. Raises ScriptCompileError with the parser's message."""
        try:
            return compile_script(source, filename)
        except (SyntaxError, ValueError) as e:
            raise ScriptCompileError(f"Script compile error: {e}") from e
        except (RecursionError, MemoryError) as e:
            raise ScriptCompileError(f"Script compile error: source too deeply nested ({type(e).__name__})") from e

    def execute(self, program: CompiledProgram, bindings: Mapping[str, Any]) -> Any:
        """Run program with bindings in a new scope and return its native result."""
        g = build_restricted_globals(self._globals, bindings)
        try:
            return run_program(program, g)
        except (Exception, SystemExit, GeneratorExit) as e:
            raise ScriptRuntimeError(
                f"Script runtime error: {type(e).__name__}: {e}"
            ) from e


_engine: ScriptEngine | None = None
_engine_lock = threading.Lock()


def get_engine() -> ScriptEngine:
    """Return the singleton ScriptEngine (thread-safe double-checked locking)."""
    global _engine
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                raw = (settings.SCRIPT_EXTRA_MODULES or "").split(",")
                _engine = ScriptEngine(extra_modules=load_extra_modules(raw))
                _log.debug("Created shared script engine")
    return _engine


_program_cache: OrderedDict[str, CompiledProgram] = OrderedDict()
_cache_lock = threading.Lock()


def compile_program(source: str) -> CompiledProgram:
    """Return a CompiledProgram for source from cache, or compile it with the shared engine and cache it."""
    key = hashlib.sha256(source.encode()).hexdigest()
    with _cache_lock:
        program = _program_cache.get(key)
        if program is not None:
            _program_cache.move_to_end(key)
            return program
    program = get_engine().compile(source)
    _log.debug("Compiled script %s", key[:12])
    with _cache_lock:
        _program_cache[key] = program
        while len(_program_cache) > max(settings.SCRIPT_PROGRAM_CACHE_SIZE, 0):
            _program_cache.popitem(last=False)
    return program


def clear_program_cache() -> None:
    with _cache_lock:
        _program_cache.clear()
